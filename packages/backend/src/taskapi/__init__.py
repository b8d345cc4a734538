"""taskapi — users and tasks API backend.

Token-based sessions (signed access tokens + rotating refresh tokens)
and owner-scoped task queries with composable filters.
"""

__version__ = "0.1.0"
