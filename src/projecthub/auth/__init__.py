"""Authentication and authorization.

Learn: Two ways to obtain a session token:
1. Email + password → POST /auth/login
2. Magic link → POST /auth/set-password (sets the password, may create
   the user and their company)

Both end in the same session JWT. Every request re-reads the user row,
so roles and tenant membership are never trusted from the token alone.
"""
