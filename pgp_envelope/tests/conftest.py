"""
Shared fixtures: freshly generated PGPy keys used as an independent OpenPGP peer.

Key generation is slow (RSA in particular), so the keys are session-scoped.
"""

from collections.abc import Callable

import pgpy
import pytest
from pgpy.constants import (
    CompressionAlgorithm,
    EllipticCurveOID,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

_ENCRYPTION_FLAGS = {KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage}


def _add_user_id(key: pgpy.PGPKey, usage: set[KeyFlags]) -> None:
    uid = pgpy.PGPUID.new("Test Recipient", email="recipient@example.com")
    key.add_uid(
        uid,
        usage=usage,
        hashes=[HashAlgorithm.SHA256],
        ciphers=[SymmetricKeyAlgorithm.AES256],
        compression=[CompressionAlgorithm.ZIP, CompressionAlgorithm.Uncompressed],
    )


@pytest.fixture(scope="session")
def rsa_key() -> pgpy.PGPKey:
    """RSA-2048 primary key that signs and encrypts, no subkeys."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    _add_user_id(key, {KeyFlags.Sign, KeyFlags.Certify, *_ENCRYPTION_FLAGS})
    return key


@pytest.fixture(scope="session")
def curve25519_key() -> pgpy.PGPKey:
    """EdDSA primary with a Curve25519 ECDH encryption subkey."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.EdDSA, EllipticCurveOID.Ed25519)
    _add_user_id(key, {KeyFlags.Sign, KeyFlags.Certify})
    subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.Curve25519)
    key.add_subkey(subkey, usage=_ENCRYPTION_FLAGS)
    return key


@pytest.fixture(scope="session")
def p256_key() -> pgpy.PGPKey:
    """ECDSA primary with a NIST P-256 ECDH encryption subkey."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.ECDSA, EllipticCurveOID.NIST_P256)
    _add_user_id(key, {KeyFlags.Sign, KeyFlags.Certify})
    subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.NIST_P256)
    key.add_subkey(subkey, usage=_ENCRYPTION_FLAGS)
    return key


@pytest.fixture
def armored_public_key() -> Callable[[pgpy.PGPKey], str]:
    def _armored(key: pgpy.PGPKey) -> str:
        return str(key.pubkey)

    return _armored


@pytest.fixture
def decrypt_message() -> Callable[[pgpy.PGPKey, str], bytes]:
    """Decrypt an armored message with PGPy and return the literal data as bytes."""

    def _decrypt(key: pgpy.PGPKey, armored: str) -> bytes:
        message = pgpy.PGPMessage.from_blob(armored)
        content = key.decrypt(message).message
        if isinstance(content, str):
            return content.encode("utf-8")
        return bytes(content)

    return _decrypt
