"""Authentication core.

Learn: Two credential paths end in the same session token:
1. Email/password → bcrypt check → session JWT
2. Google token (ID token or access token) → Google verification → session JWT

Pieces, leaves first: verifier (credentials → claim), resolver
(claim → user row), session (user → token → identity). The auth
service in ticketdesk.services wires them together per endpoint.
"""
