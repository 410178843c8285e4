"""
auth — credential and session handling.

Provides:
  • Password hashing (bcrypt) with legacy-plaintext detection
  • Signed, expiring bearer tokens
  • ``CredentialService`` — register / login / profile updates
  • ``AuthGate`` and the ``get_current_user_id`` FastAPI dependency
"""
