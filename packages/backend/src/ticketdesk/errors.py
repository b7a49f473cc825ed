"""Error taxonomy shared by the auth core and the ticket service.

Learn: Services raise these; the app-level exception handlers in
ticketdesk.api.errors turn them into JSON responses. Each class carries
its HTTP status and a message that is safe to show the client. Anything
internal (provider responses, SQL errors) goes to the log, not into
`message`.
"""


class TicketDeskError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TicketDeskError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request."


class AuthenticationError(TicketDeskError):
    """Bad credentials, bad external token, or bad session token."""

    status_code = 401
    default_message = "Invalid credentials"


class NotFoundError(TicketDeskError):
    status_code = 404
    default_message = "Not found."


class ConflictError(TicketDeskError):
    """Duplicate identity (email or Google account already taken).

    Also raised when a concurrent first-time sign-up loses the race on a
    unique constraint, so clients may retry.
    """

    status_code = 409
    default_message = "Conflict."


class DependencyError(TicketDeskError):
    """Database or identity provider unavailable."""

    status_code = 500
    default_message = "A required service is unavailable."
