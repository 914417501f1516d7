"""
pgp_envelope exception hierarchy.

All exceptions inherit from PGPEnvelopeError for easy catching. Errors raised while
reading the recipient key derive from ParseError, errors raised while building the
message derive from EncryptError.
"""

from typing import Any


class PGPEnvelopeError(Exception):
    """Base exception for all pgp_envelope errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ParseError(PGPEnvelopeError):
    """The public key block could not be read."""


class ArmorMalformedError(ParseError):
    """Missing or duplicated markers, bad base64 or bad header lines."""


class ArmorChecksumMismatchError(ParseError):
    """The CRC-24 line does not match the armored body."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message, expected=f"{expected:06x}", actual=f"{actual:06x}")
        self.expected = expected
        self.actual = actual


class PacketMalformedError(ParseError):
    """Unknown length encoding, truncated body or illegal tag sequencing."""


class NotAPublicKeyRingError(ParseError):
    """The first packet of the key block is not a Public-Key packet."""


class NoEncryptionKeyError(ParseError):
    """No key on the ring supports encryption."""


class UnsupportedAlgorithmError(ParseError):
    """Algorithm, curve or key version outside the implemented set."""

    def __init__(self, message: str, *, algorithm: int | str | None = None) -> None:
        super().__init__(message, algorithm=algorithm)
        self.algorithm = algorithm


class EncryptError(PGPEnvelopeError):
    """Building the encrypted message failed."""


class CryptoFailureError(EncryptError):
    """An underlying primitive (RSA, ECDH, AES, hash, RNG) failed."""


class InputTooLargeError(EncryptError):
    """A length does not fit the chosen encoding."""

    def __init__(self, message: str, *, size: int, limit: int) -> None:
        super().__init__(message, size=size, limit=limit)
        self.size = size
        self.limit = limit
