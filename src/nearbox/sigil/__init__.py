"""
Sigil - Keys and signatures.

Ed25519 keypairs (cryptography), the per-account key store, and
transaction signing.
"""
