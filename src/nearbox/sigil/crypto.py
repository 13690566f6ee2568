"""
Transaction signing.

Serialize the transaction, hash it with SHA-256, sign the hash with
ed25519. Signing is pure: the same transaction and key always produce
the same signature.
"""

from __future__ import annotations

from ..pneuma.tx import SignedTransaction, Transaction
from .keys import KeyPair


class CryptoError(ValueError):
    pass


class SignatureError(CryptoError):
    pass


def sign_transaction(transaction: Transaction, key_pair: KeyPair) -> SignedTransaction:
    """
    Sign a transaction with an ed25519 keypair.

    Args:
        transaction: Unsigned transaction
        key_pair: Keypair whose public half is ``transaction.public_key``

    Returns:
        New SignedTransaction; the input transaction is untouched

    Raises:
        SignatureError: If the keypair does not match the transaction's key
    """
    if key_pair.public_key != transaction.public_key:
        raise SignatureError(
            f"Keypair {key_pair.public_key} does not match transaction key {transaction.public_key}."
        )
    signature = key_pair.sign(transaction.hash())
    return SignedTransaction(transaction=transaction, signature=signature)


def verify_signed_transaction(signed: SignedTransaction) -> None:
    """Check the envelope signature against the transaction's own public key.

    Raises:
        SignatureError: If verification fails.
    """
    transaction = signed.transaction
    if not transaction.public_key.verify(signed.signature, transaction.hash()):
        raise SignatureError("Invalid transaction signature.")
