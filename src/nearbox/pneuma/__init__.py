"""
Pneuma - On-chain interaction layer.

Provides the JSON-RPC gateway, the Borsh transaction codec, transaction
building and nonce tracking, and the token amount codec.

Uses httpx + base58 instead of a full NEAR SDK.
"""
