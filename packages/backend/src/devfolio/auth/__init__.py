"""Authentication.

Users prove email ownership with a one-time code, then sign in with
username-or-email and password. Sessions are a pair of JWTs:

1. Access token → short-lived, stateless, authorizes API calls
2. Refresh token → long-lived, must match the single value stored on
   the user row, rotated on every refresh

Both travel as httpOnly cookies; a Bearer header is accepted too.
"""
