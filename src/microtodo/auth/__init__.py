"""Authentication and authorization shared by both services.

Learn: Tokens are stateless. The identity service signs them with a
shared HMAC secret and the task service verifies them with the same
secret, so neither service keeps a session table:
1. jwt.py      → encode/decode the signed identity assertion
2. verifier.py → turn a token into a Principal (or a rejection)
3. public.py   → which paths skip authentication
4. ownership.py → per-resource owner checks
"""
