"""Authentication and sessions.

Learn: Two kinds of credential work together:
1. Access token → short-lived signed JWT, verified without touching the DB
2. Refresh token → long-lived random string stored per session, rotated on use

Every authenticated request resolves to a live User row.
"""
