"""auth/ -- Credentials, session tokens, and request authentication for the verifier.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, web/, or verifications/.
api/ and web/ import from auth/, not the other way around.
"""
