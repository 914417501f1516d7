"""
Encryptor configuration.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass

from pgp_envelope.core.packet import MAX_PARTIAL_CHUNK_POWER, MIN_PARTIAL_CHUNK_POWER
from pgp_envelope.models.crypto import CompressionAlgorithm, LiteralFormat
from pgp_envelope.services.literal import DEFAULT_FILENAME

_SUPPORTED_COMPRESSION = (
    CompressionAlgorithm.UNCOMPRESSED,
    CompressionAlgorithm.ZIP,
    CompressionAlgorithm.ZLIB,
)


@dataclass(frozen=True, kw_only=True)
class EncryptorConfig:
    """
    Attributes:
        filename: Filename recorded in the Literal Data packet.
        literal_format: Literal Data format octet.
        compression: Compression algorithm for the Compressed Data packet.
        compression_level: zlib level, -1 (default) to 9.
        armor_headers: `(key, value)` pairs emitted in the output armor.
        partial_body_chunk_power: When set, Compressed and SEIPD packets use partial
            body lengths of `2**power` bytes instead of one definite length.
        random_bytes: Secure random source for session keys and CFB prefixes.
    """

    filename: str = DEFAULT_FILENAME
    literal_format: LiteralFormat = LiteralFormat.UTF8
    compression: CompressionAlgorithm = CompressionAlgorithm.ZIP
    compression_level: int = 6
    armor_headers: tuple[tuple[str, str], ...] = ()
    partial_body_chunk_power: int | None = None
    random_bytes: Callable[[int], bytes] = os.urandom

    def __post_init__(self) -> None:
        if len(self.filename.encode("utf-8")) > 255:
            msg = "filename must encode to at most 255 bytes"
            raise ValueError(msg)
        if self.compression not in _SUPPORTED_COMPRESSION:
            msg = "compression must be UNCOMPRESSED, ZIP or ZLIB"
            raise ValueError(msg)
        if not -1 <= self.compression_level <= 9:
            msg = "compression_level must be between -1 and 9"
            raise ValueError(msg)
        for key, value in self.armor_headers:
            if not key or key != key.strip() or ":" in key or any(c in key + value for c in "\r\n"):
                msg = "armor header keys must be non-empty, unpadded, without ':' or newlines"
                raise ValueError(msg)
        power = self.partial_body_chunk_power
        if power is not None and not MIN_PARTIAL_CHUNK_POWER <= power <= MAX_PARTIAL_CHUNK_POWER:
            msg = (
                f"partial_body_chunk_power must be between "
                f"{MIN_PARTIAL_CHUNK_POWER} and {MAX_PARTIAL_CHUNK_POWER}"
            )
            raise ValueError(msg)
