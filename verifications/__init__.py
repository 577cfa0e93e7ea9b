"""verifications/ -- Append-only log of address validation attempts.

Layer rule: verifications/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, web/, or auth/.
"""
