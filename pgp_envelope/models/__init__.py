"""
Domain models for pgp_envelope.

Key models are immutable (frozen) dataclasses; SessionKey is a single-use holder
that is zeroed once the message is built.
"""

from pgp_envelope.models.crypto import (
    CompressionAlgorithm,
    HashAlgorithm,
    LiteralFormat,
    PacketTag,
    PKESKPacket,
    PublicKeyAlgorithm,
    SessionKey,
    SymmetricAlgorithm,
)
from pgp_envelope.models.keys import (
    ECDHKeyMaterial,
    EllipticCurve,
    PublicKey,
    PublicKeyRing,
    RSAKeyMaterial,
)

__all__ = [
    # Crypto
    "PacketTag",
    "SymmetricAlgorithm",
    "PublicKeyAlgorithm",
    "HashAlgorithm",
    "CompressionAlgorithm",
    "LiteralFormat",
    "SessionKey",
    "PKESKPacket",
    # Keys
    "EllipticCurve",
    "RSAKeyMaterial",
    "ECDHKeyMaterial",
    "PublicKey",
    "PublicKeyRing",
]
