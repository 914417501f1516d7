"""
OpenPGP message encryption facade.

This is the main entry point for users of the library:

    armor(PKESK || SEIPD(compressed(literal(payload))))
"""

from collections.abc import Callable
from datetime import datetime

import structlog

from pgp_envelope.config import EncryptorConfig
from pgp_envelope.core.armor import ArmorType, armor
from pgp_envelope.core.packet import write_packet, write_partial_packet
from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.crypto.seip import encrypt_seipd_packet
from pgp_envelope.crypto.session_key import build_pkesk_packet
from pgp_envelope.exceptions import CryptoFailureError
from pgp_envelope.models.crypto import PacketTag, SessionKey, SymmetricAlgorithm
from pgp_envelope.models.keys import PublicKey, PublicKeyRing
from pgp_envelope.services.compression import build_compressed_packet
from pgp_envelope.services.keyring import read_public_key_ring, select_encryption_key
from pgp_envelope.services.literal import build_literal_packet

logger = structlog.get_logger(__name__)

SESSION_ALGORITHM = SymmetricAlgorithm.AES_256


class EncryptionContext:
    """
    State for building exactly one message.

    Holds the recipient key, a freshly generated session key, the random source and
    an append-only output buffer. A context refuses to run twice.
    """

    def __init__(
        self,
        recipient: PublicKey,
        config: EncryptorConfig,
    ) -> None:
        self._recipient = recipient
        self._config = config
        self._random_bytes: Callable[[int], bytes] = config.random_bytes
        self._sink = bytearray()
        self._used = False

    def run(self, plaintext: bytes | bytearray, *, modified: datetime | int | None = None) -> bytes:
        """
        Produce the binary `PKESK || SEIPD` packet stream.

        Raises:
            RuntimeError: If this context was already used.
            EncryptError: If any stage fails.
        """
        if self._used:
            msg = "EncryptionContext is single-use"
            raise RuntimeError(msg)
        self._used = True

        session_key = self._generate_session_key()
        literal = bytearray()
        compressed = bytearray()
        try:
            pkesk = build_pkesk_packet(self._recipient, session_key)
            write_packet(self._sink, PacketTag.PKESK, pkesk.body)

            literal = build_literal_packet(
                plaintext,
                filename=self._config.filename,
                literal_format=self._config.literal_format,
                modified=modified,
            )
            compressed = build_compressed_packet(
                literal,
                algorithm=self._config.compression,
                level=self._config.compression_level,
                partial_chunk_power=self._config.partial_body_chunk_power,
            )
            seipd = encrypt_seipd_packet(compressed, session_key, random_bytes=self._draw_random)
            self._write(PacketTag.SEIP, seipd)

            logger.debug(
                "Built encrypted message",
                key_id=self._recipient.key_id_hex,
                plaintext_size=len(plaintext),
                compressed_size=len(compressed),
                message_size=len(self._sink),
            )
            return bytes(self._sink)
        finally:
            session_key.clear()
            SecureBytes.wipe(literal, compressed)
            self._sink.clear()

    def _generate_session_key(self) -> SessionKey:
        return SessionKey.generate(SESSION_ALGORITHM, self._draw_random)

    def _draw_random(self, size: int) -> bytes:
        try:
            data = self._random_bytes(size)
        except OSError as e:
            msg = f"Random source failed: {e}"
            raise CryptoFailureError(msg) from e
        if len(data) != size:
            msg = f"Random source returned {len(data)} bytes, expected {size}"
            raise CryptoFailureError(msg)
        return data

    def _write(self, tag: PacketTag, body: bytes) -> None:
        power = self._config.partial_body_chunk_power
        if power is None:
            write_packet(self._sink, tag, body)
        else:
            write_partial_packet(self._sink, tag, body, power)


class Encryptor:
    """
    Encrypts messages to the public key in one armored key block.

    The key block is parsed once; the encryption key is chosen at construction.
    Each encrypt() call uses a new session key, so outputs differ between calls.

    Example:
        ```python
        encryptor = Encryptor(armored_public_key)
        message = encryptor.encrypt("hello\\n")
        ```

    Args:
        public_key_block: ASCII-armored `PGP PUBLIC KEY BLOCK`.
        config: Encryption options. Uses defaults if not provided.

    Raises:
        ParseError: If the key block cannot be read or has no usable encryption key.
    """

    def __init__(self, public_key_block: str | bytes, config: EncryptorConfig | None = None) -> None:
        self._config = config or EncryptorConfig()
        self._key_ring = read_public_key_ring(public_key_block)
        self._encryption_key = select_encryption_key(self._key_ring)

    @property
    def key_ring(self) -> PublicKeyRing:
        return self._key_ring

    @property
    def encryption_key(self) -> PublicKey:
        return self._encryption_key

    @property
    def key_id(self) -> str:
        """Key ID of the key session keys are encrypted to."""
        return self._encryption_key.key_id_hex

    @property
    def fingerprint(self) -> str:
        """Fingerprint of the primary key."""
        return self._key_ring.primary.fingerprint_hex

    def encrypt(self, plaintext: bytes | str, *, modified: datetime | int | None = None) -> str:
        """
        Encrypt `plaintext` and return an armored `PGP MESSAGE`.

        Strings are UTF-8 encoded; no newline is added.

        Args:
            plaintext: Payload to encrypt.
            modified: Literal data timestamp; defaults to now.

        Raises:
            EncryptError: If encryption fails. No partial output is returned.
        """
        buffer = bytearray(plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext)
        try:
            context = EncryptionContext(self._encryption_key, self._config)
            message = context.run(buffer, modified=modified)
        finally:
            SecureBytes.wipe(buffer)
        return armor(ArmorType.MESSAGE, message, headers=self._config.armor_headers)


def encrypt(
    public_key_block: str | bytes,
    plaintext: bytes | str,
    *,
    config: EncryptorConfig | None = None,
) -> str:
    """One-shot helper: `Encryptor(public_key_block, config).encrypt(plaintext)`."""
    return Encryptor(public_key_block, config).encrypt(plaintext)
