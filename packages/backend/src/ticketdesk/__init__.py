"""TicketDesk — authenticated ticket tracking API.

Users sign up with a password or sign in with Google, receive a signed
session token, and use it to open and resolve support tickets.
"""

__version__ = "0.1.0"
