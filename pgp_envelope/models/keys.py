"""
Public key domain models.

These are immutable (frozen) dataclasses; a parsed key can be shared freely.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum

from cryptography.hazmat.primitives.asymmetric import ec

from pgp_envelope.models.crypto import HashAlgorithm, PublicKeyAlgorithm, SymmetricAlgorithm

_V4_FINGERPRINT_PREFIX = 0x99


class EllipticCurve(Enum):
    """Curves usable for ECDH recipients, keyed by their DER OID body."""

    CURVE25519 = bytes.fromhex("2b060104019755010501")
    NIST_P256 = bytes.fromhex("2a8648ce3d030107")
    NIST_P384 = bytes.fromhex("2b81040022")
    NIST_P521 = bytes.fromhex("2b81040023")

    @property
    def oid(self) -> bytes:
        return self.value

    @property
    def is_native(self) -> bool:
        """Curve25519 points are `0x40 || u`; NIST points are uncompressed SEC1."""
        return self is EllipticCurve.CURVE25519

    @property
    def point_size(self) -> int:
        """Encoded public point length in bytes, prefix octet included."""
        match self:
            case EllipticCurve.CURVE25519:
                return 33
            case EllipticCurve.NIST_P256:
                return 65
            case EllipticCurve.NIST_P384:
                return 97
            case EllipticCurve.NIST_P521:
                return 133

    def nist_curve(self) -> ec.EllipticCurve:
        match self:
            case EllipticCurve.NIST_P256:
                return ec.SECP256R1()
            case EllipticCurve.NIST_P384:
                return ec.SECP384R1()
            case EllipticCurve.NIST_P521:
                return ec.SECP521R1()
            case _:
                msg = f"{self.name} is not a NIST curve"
                raise ValueError(msg)


@dataclass(frozen=True, kw_only=True)
class RSAKeyMaterial:
    n: int
    e: int

    @property
    def size_in_bits(self) -> int:
        return self.n.bit_length()


@dataclass(frozen=True, kw_only=True)
class ECDHKeyMaterial:
    """
    ECDH public key fields.

    Attributes:
        curve: Recipient curve.
        point: Encoded public point (with its 0x40 or 0x04 prefix).
        kdf_hash: Hash used by the RFC 6637 KDF.
        kdf_cipher: AES key-wrap algorithm for the session key.
    """

    curve: EllipticCurve
    point: bytes
    kdf_hash: HashAlgorithm
    kdf_cipher: SymmetricAlgorithm


@dataclass(frozen=True, kw_only=True)
class PublicKey:
    """
    A v4 Public-Key or Public-Subkey packet.

    `material` is None when the algorithm (or its curve/KDF parameters) is not one
    this library can encrypt to; the key still takes part in fingerprinting.
    """

    version: int
    created: int
    algorithm_id: int
    body: bytes = field(repr=False)
    material: RSAKeyMaterial | ECDHKeyMaterial | None = None
    is_subkey: bool = False

    @property
    def algorithm(self) -> PublicKeyAlgorithm | None:
        try:
            return PublicKeyAlgorithm(self.algorithm_id)
        except ValueError:
            return None

    @property
    def fingerprint(self) -> bytes:
        """SHA-1 over `0x99 || len(body) as 2 bytes || body`."""
        header = bytes([_V4_FINGERPRINT_PREFIX]) + len(self.body).to_bytes(2, "big")
        return hashlib.sha1(header + self.body).digest()

    @property
    def key_id(self) -> bytes:
        """Low 64 bits of the fingerprint."""
        return self.fingerprint[-8:]

    @property
    def fingerprint_hex(self) -> str:
        return self.fingerprint.hex().upper()

    @property
    def key_id_hex(self) -> str:
        return self.key_id.hex().upper()

    @property
    def is_encryption_key(self) -> bool:
        """RSA (1, 2) or ECDH (18); the algorithms this library encrypts to."""
        algorithm = self.algorithm
        return algorithm is not None and algorithm.is_supported_for_encryption


@dataclass(frozen=True, kw_only=True)
class PublicKeyRing:
    """A primary key with its user IDs and subkeys, in packet order."""

    primary: PublicKey
    subkeys: tuple[PublicKey, ...] = ()
    user_ids: tuple[str, ...] = ()

    @property
    def keys(self) -> tuple[PublicKey, ...]:
        return (self.primary, *self.subkeys)
