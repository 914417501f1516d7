"""
pgp_envelope: encrypt a payload to one OpenPGP public key.

Produces RFC 4880 ASCII-armored messages (AES-256, MDC, ZIP compression) that any
conformant OpenPGP implementation can decrypt with the matching private key.

Example:
    ```python
    from pgp_envelope import Encryptor

    encryptor = Encryptor(armored_public_key)
    message = encryptor.encrypt(b"hello\\n")
    print(message)  # -----BEGIN PGP MESSAGE----- ...
    ```
"""

from pgp_envelope.config import EncryptorConfig
from pgp_envelope.core.armor import ArmorType, armor, crc24, dearmor
from pgp_envelope.encryptor import EncryptionContext, Encryptor, encrypt
from pgp_envelope.exceptions import (
    ArmorChecksumMismatchError,
    ArmorMalformedError,
    CryptoFailureError,
    EncryptError,
    InputTooLargeError,
    NoEncryptionKeyError,
    NotAPublicKeyRingError,
    PacketMalformedError,
    ParseError,
    PGPEnvelopeError,
    UnsupportedAlgorithmError,
)
from pgp_envelope.models.crypto import CompressionAlgorithm, LiteralFormat
from pgp_envelope.models.keys import PublicKey, PublicKeyRing

__version__ = "0.1.0"

__all__ = [
    # Main entry points
    "Encryptor",
    "EncryptorConfig",
    "EncryptionContext",
    "encrypt",
    # Armor
    "ArmorType",
    "armor",
    "dearmor",
    "crc24",
    # Models
    "CompressionAlgorithm",
    "LiteralFormat",
    "PublicKey",
    "PublicKeyRing",
    # Exceptions
    "PGPEnvelopeError",
    "ParseError",
    "ArmorMalformedError",
    "ArmorChecksumMismatchError",
    "PacketMalformedError",
    "NotAPublicKeyRingError",
    "NoEncryptionKeyError",
    "UnsupportedAlgorithmError",
    "EncryptError",
    "CryptoFailureError",
    "InputTooLargeError",
]
