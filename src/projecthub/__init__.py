"""ProjectHub — multi-tenant project management backend.

Tenants own users and projects. Users sign in with a password, or with a
one-time magic link that lets them set one. Every privileged request is
re-checked against the live user record.
"""

__version__ = "0.1.0"
