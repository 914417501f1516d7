"""
Compressed Data packets (tag 8).

Body layout: algorithm (1) || compressed bytes. ZIP is raw DEFLATE with no zlib
header or trailer; ZLIB is the RFC 1950 wrapper.
"""

import zlib

from pgp_envelope.core.packet import write_packet, write_partial_packet
from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.exceptions import CryptoFailureError, UnsupportedAlgorithmError
from pgp_envelope.models.crypto import CompressionAlgorithm, PacketTag

DEFAULT_COMPRESSION_LEVEL = 6
_RAW_DEFLATE_WBITS = -15
_ZLIB_WBITS = 15


def compress(
    data: bytes | bytearray,
    algorithm: CompressionAlgorithm = CompressionAlgorithm.ZIP,
    level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytearray:
    """
    Build a Compressed Data packet body for `data`.

    Raises:
        UnsupportedAlgorithmError: For BZip2 or unknown algorithms.
    """
    body = bytearray([algorithm])
    match algorithm:
        case CompressionAlgorithm.UNCOMPRESSED:
            body += data
        case CompressionAlgorithm.ZIP:
            body += _deflate(data, level, _RAW_DEFLATE_WBITS)
        case CompressionAlgorithm.ZLIB:
            body += _deflate(data, level, _ZLIB_WBITS)
        case _:
            msg = "Unsupported compression algorithm"
            raise UnsupportedAlgorithmError(msg, algorithm=int(algorithm))
    return body


def _deflate(data: bytes | bytearray, level: int, wbits: int) -> bytes:
    try:
        compressor = zlib.compressobj(level, zlib.DEFLATED, wbits)
        return compressor.compress(data) + compressor.flush()
    except zlib.error as e:
        msg = f"Compression failed: {e}"
        raise CryptoFailureError(msg) from e


def build_compressed_packet(
    packet_data: bytes | bytearray,
    *,
    algorithm: CompressionAlgorithm = CompressionAlgorithm.ZIP,
    level: int = DEFAULT_COMPRESSION_LEVEL,
    partial_chunk_power: int | None = None,
) -> bytearray:
    """
    Wrap an inner packet stream in a Compressed Data packet.

    Args:
        packet_data: Serialized inner packets (normally one Literal Data packet).
        algorithm: Compression algorithm.
        level: zlib compression level.
        partial_chunk_power: Emit partial body lengths of `2**power` bytes when set.

    Returns:
        The complete tag 8 packet.
    """
    body = compress(packet_data, algorithm, level)
    packet = bytearray()
    try:
        if partial_chunk_power is None:
            write_packet(packet, PacketTag.COMPRESSED_DATA, body)
        else:
            write_partial_packet(packet, PacketTag.COMPRESSED_DATA, body, partial_chunk_power)
    finally:
        SecureBytes.wipe(body)
    return packet
