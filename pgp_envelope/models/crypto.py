"""
Cryptographic domain models.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum, StrEnum

from cryptography.hazmat.primitives import hashes

from pgp_envelope.core.secure_bytes import SecureBytes


class PacketTag(IntEnum):
    """OpenPGP packet tags used by this library."""

    PKESK = 1
    SIGNATURE = 2
    PUBLIC_KEY = 6
    COMPRESSED_DATA = 8
    LITERAL_DATA = 11
    TRUST = 12
    USER_ID = 13
    PUBLIC_SUBKEY = 14
    USER_ATTRIBUTE = 17
    SEIP = 18
    MDC = 19


class SymmetricAlgorithm(IntEnum):
    """OpenPGP symmetric algorithm identifiers."""

    PLAINTEXT = 0
    IDEA = 1
    TRIPLE_DES = 2
    CAST5 = 3
    BLOWFISH = 4
    AES_128 = 7
    AES_192 = 8
    AES_256 = 9
    TWOFISH = 10
    CAMELLIA_128 = 11
    CAMELLIA_192 = 12
    CAMELLIA_256 = 13

    @property
    def key_size(self) -> int:
        """Get key size in bytes for this algorithm."""
        match self:
            case self.AES_128 | self.CAST5 | self.BLOWFISH | self.CAMELLIA_128 | self.IDEA:
                return 16
            case self.AES_192 | self.TRIPLE_DES | self.CAMELLIA_192:
                return 24
            case self.AES_256 | self.TWOFISH | self.CAMELLIA_256:
                return 32
            case _:
                return 0

    @property
    def block_size(self) -> int:
        """Get block size in bytes for this algorithm."""
        match self:
            case self.CAST5 | self.BLOWFISH | self.TRIPLE_DES | self.IDEA:
                return 8
            case (
                self.AES_128
                | self.AES_192
                | self.AES_256
                | self.TWOFISH
                | self.CAMELLIA_128
                | self.CAMELLIA_192
                | self.CAMELLIA_256
            ):
                return 16
            case _:
                return 0

    @property
    def is_aes(self) -> bool:
        return self in (self.AES_128, self.AES_192, self.AES_256)


class PublicKeyAlgorithm(IntEnum):
    """OpenPGP public key algorithm identifiers."""

    RSA_ENCRYPT_OR_SIGN = 1
    RSA_ENCRYPT_ONLY = 2
    RSA_SIGN_ONLY = 3
    ELGAMAL_ENCRYPT_ONLY = 16
    DSA = 17
    ECDH = 18
    ECDSA = 19
    ELGAMAL_ENCRYPT_OR_SIGN = 20
    EDDSA = 22
    X25519 = 25
    ED25519 = 27

    @property
    def can_encrypt(self) -> bool:
        """Whether OpenPGP allows this algorithm to receive encrypted session keys."""
        return self in (
            self.RSA_ENCRYPT_OR_SIGN,
            self.RSA_ENCRYPT_ONLY,
            self.ELGAMAL_ENCRYPT_ONLY,
            self.ECDH,
            self.ELGAMAL_ENCRYPT_OR_SIGN,
            self.X25519,
        )

    @property
    def is_supported_for_encryption(self) -> bool:
        """Whether this library can wrap a session key for this algorithm."""
        return self in (self.RSA_ENCRYPT_OR_SIGN, self.RSA_ENCRYPT_ONLY, self.ECDH)

    @property
    def is_sign_only(self) -> bool:
        return self in (self.RSA_SIGN_ONLY, self.DSA, self.ECDSA, self.EDDSA, self.ED25519)


class HashAlgorithm(IntEnum):
    """OpenPGP hash algorithm identifiers."""

    MD5 = 1
    SHA1 = 2
    RIPEMD160 = 3
    SHA256 = 8
    SHA384 = 9
    SHA512 = 10
    SHA224 = 11

    def new(self) -> hashes.HashAlgorithm:
        """Get a fresh `cryptography` hash instance for this algorithm."""
        match self:
            case self.SHA256:
                return hashes.SHA256()
            case self.SHA384:
                return hashes.SHA384()
            case self.SHA512:
                return hashes.SHA512()
            case self.SHA224:
                return hashes.SHA224()
            case self.SHA1:
                return hashes.SHA1()
            case _:
                msg = f"No hash implementation for {self.name}"
                raise ValueError(msg)


class CompressionAlgorithm(IntEnum):
    """OpenPGP compression algorithm identifiers."""

    UNCOMPRESSED = 0
    ZIP = 1
    ZLIB = 2
    BZIP2 = 3


class LiteralFormat(StrEnum):
    """Literal Data packet format octets."""

    BINARY = "b"
    TEXT = "t"
    UTF8 = "u"


class SessionKey:
    """
    A one-time symmetric key for a single message.

    The key bytes live in a SecureBytes buffer; call clear() once the message is built.

    Attributes:
        algorithm: The symmetric algorithm used.
        key_data: The raw key bytes.
    """

    __slots__ = ("algorithm", "key_data")

    def __init__(self, *, algorithm: SymmetricAlgorithm, key_data: SecureBytes) -> None:
        expected = algorithm.key_size
        if expected and len(key_data) != expected:
            msg = f"Key size mismatch: {algorithm.name} expects {expected} bytes, got {len(key_data)}"
            raise ValueError(msg)
        self.algorithm = algorithm
        self.key_data = key_data

    @classmethod
    def generate(
        cls, algorithm: SymmetricAlgorithm, random_bytes: Callable[[int], bytes]
    ) -> "SessionKey":
        """Draw a fresh key of the algorithm's size from `random_bytes`."""
        raw = bytearray(random_bytes(algorithm.key_size))
        try:
            return cls(algorithm=algorithm, key_data=SecureBytes(raw))
        finally:
            SecureBytes.wipe(raw)

    @property
    def block_size(self) -> int:
        """Get the block size for this key's algorithm."""
        return self.algorithm.block_size

    @property
    def checksum(self) -> int:
        """Sum of the key bytes mod 65536, as carried in the PKESK plaintext."""
        return sum(self.key_data) % 65536

    def clear(self) -> None:
        self.key_data.clear()

    def __repr__(self) -> str:
        return f"SessionKey({self.algorithm.name}, {self.key_data!r})"


@dataclass(frozen=True, kw_only=True)
class PKESKPacket:
    """
    Public-Key Encrypted Session Key packet data.

    `encrypted_session_key` holds the algorithm-specific fields exactly as written
    on the wire.
    """

    version: int
    key_id: bytes  # 8 bytes
    algorithm: PublicKeyAlgorithm
    encrypted_session_key: bytes

    @property
    def body(self) -> bytes:
        return bytes([self.version]) + self.key_id + bytes([self.algorithm]) + self.encrypted_session_key
