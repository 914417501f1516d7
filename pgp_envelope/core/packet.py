"""
OpenPGP packet framing, RFC 4880 section 4.

Reads both old-format and new-format headers (including partial body lengths and
the old-format indeterminate length) and writes new-format headers only.
"""

import io
from dataclasses import dataclass
from typing import BinaryIO

from pgp_envelope.exceptions import InputTooLargeError, PacketMalformedError

MAX_DEFINITE_LENGTH = 0xFFFFFFFF
MAX_MPI_BITS = 0xFFFF
MIN_PARTIAL_CHUNK_POWER = 9  # first partial chunk must be at least 512 bytes
MAX_PARTIAL_CHUNK_POWER = 30


@dataclass(frozen=True)
class Packet:
    """A whole packet: its tag and de-chunked body."""

    tag: int
    body: bytes
    new_format: bool = True

    def stream(self) -> BinaryIO:
        """Get the body as a readable binary stream."""
        return io.BytesIO(self.body)


def read_packet(stream: BinaryIO) -> Packet | None:
    """
    Read the next packet from `stream`.

    Returns:
        The packet, or None at a clean end of stream.

    Raises:
        PacketMalformedError: If the header or body is invalid or truncated.
    """
    first = stream.read(1)
    if not first:
        return None

    first_byte = first[0]
    if _is_new_format_packet(first_byte):
        tag = first_byte & 0x3F
        _validate_tag(tag)
        return Packet(tag=tag, body=_read_new_format_body(stream), new_format=True)

    if _is_old_format_packet(first_byte):
        tag = (first_byte & 0x3C) >> 2
        _validate_tag(tag)
        length_type = first_byte & 0x03
        return Packet(tag=tag, body=_read_old_format_body(stream, length_type), new_format=False)

    msg = f"Invalid packet header: 0x{first_byte:02x}"
    raise PacketMalformedError(msg)


def parse_packets(data: bytes | bytearray) -> list[Packet]:
    """Read every packet in `data`; the whole input must be consumed."""
    stream = io.BytesIO(data)
    packets = []
    while (packet := read_packet(stream)) is not None:
        packets.append(packet)
    return packets


def _is_new_format_packet(first_byte: int) -> bool:
    return (first_byte & 0xC0) == 0xC0


def _is_old_format_packet(first_byte: int) -> bool:
    return (first_byte & 0xC0) == 0x80


def _validate_tag(tag: int) -> None:
    if tag == 0:
        msg = "Reserved packet tag 0"
        raise PacketMalformedError(msg)


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        msg = f"Truncated {what}: need {size} bytes, have {len(data)}"
        raise PacketMalformedError(msg)
    return data


def _read_new_format_length(stream: BinaryIO) -> tuple[int, bool]:
    """Returns (length, is_partial)."""
    first_byte = _read_exact(stream, 1, "length")[0]

    if first_byte < 192:
        return first_byte, False

    if first_byte < 224:
        second_byte = _read_exact(stream, 1, "two-byte length")[0]
        return ((first_byte - 192) << 8) + second_byte + 192, False

    if first_byte == 255:
        return int.from_bytes(_read_exact(stream, 4, "five-byte length"), "big"), False

    return 1 << (first_byte & 0x1F), True


def _read_new_format_body(stream: BinaryIO) -> bytes:
    chunks = []
    while True:
        length, is_partial = _read_new_format_length(stream)
        chunks.append(_read_exact(stream, length, "packet body"))
        if not is_partial:
            return b"".join(chunks)


def _read_old_format_body(stream: BinaryIO, length_type: int) -> bytes:
    if length_type == 0:
        length = _read_exact(stream, 1, "one-byte length")[0]
    elif length_type == 1:
        length = int.from_bytes(_read_exact(stream, 2, "two-byte length"), "big")
    elif length_type == 2:
        length = int.from_bytes(_read_exact(stream, 4, "four-byte length"), "big")
    else:
        # Indeterminate: the body runs to the end of the enclosing stream.
        return stream.read()
    return _read_exact(stream, length, "packet body")


def encode_length(length: int) -> bytes:
    """Encode a definite new-format body length using the shortest form."""
    if length < 0:
        msg = f"Negative packet length: {length}"
        raise ValueError(msg)
    if length < 192:
        return bytes([length])
    if length < 8384:
        length -= 192
        return bytes([(length >> 8) + 192, length & 0xFF])
    if length <= MAX_DEFINITE_LENGTH:
        return b"\xff" + length.to_bytes(4, "big")
    msg = "Packet body too large for a definite length"
    raise InputTooLargeError(msg, size=length, limit=MAX_DEFINITE_LENGTH)


def encode_header(tag: int, length: int) -> bytes:
    """New-format header: `0xC0 | tag` followed by the encoded length."""
    if not 0 < tag < 64:
        msg = f"Packet tag out of range: {tag}"
        raise ValueError(msg)
    return bytes([0xC0 | tag]) + encode_length(length)


def write_packet(sink: BinaryIO | bytearray, tag: int, body: bytes | bytearray) -> None:
    """Append a new-format packet with a definite length to `sink`."""
    _append(sink, encode_header(tag, len(body)))
    _append(sink, body)


def write_partial_packet(
    sink: BinaryIO | bytearray,
    tag: int,
    body: bytes | bytearray,
    chunk_power: int,
) -> None:
    """
    Append a new-format packet using partial body lengths.

    The body is cut into chunks of `1 << chunk_power` bytes; the remainder (possibly
    empty) is written with a definite length. Bodies shorter than one chunk get a
    plain definite-length header.
    """
    if not MIN_PARTIAL_CHUNK_POWER <= chunk_power <= MAX_PARTIAL_CHUNK_POWER:
        msg = f"chunk_power must be in [{MIN_PARTIAL_CHUNK_POWER}, {MAX_PARTIAL_CHUNK_POWER}]"
        raise ValueError(msg)

    chunk_size = 1 << chunk_power
    if len(body) < chunk_size:
        write_packet(sink, tag, body)
        return

    view = memoryview(body)
    _append(sink, bytes([0xC0 | tag]))
    offset = 0
    while len(body) - offset >= chunk_size:
        _append(sink, bytes([0xE0 | chunk_power]))
        _append(sink, view[offset : offset + chunk_size])
        offset += chunk_size
    _append(sink, encode_length(len(body) - offset))
    _append(sink, view[offset:])


def _append(sink: BinaryIO | bytearray, data: bytes | bytearray | memoryview) -> None:
    if isinstance(sink, bytearray):
        sink.extend(data)
    else:
        sink.write(data)


def encode_mpi(value: int | bytes | bytearray) -> bytes:
    """
    Encode an MPI: 16-bit bit count followed by the minimal big-endian magnitude.

    Byte strings are taken as big-endian magnitudes; leading zero bytes are dropped.
    """
    if isinstance(value, int):
        if value < 0:
            msg = "MPI cannot be negative"
            raise ValueError(msg)
        magnitude = value.to_bytes((value.bit_length() + 7) // 8, "big")
    else:
        magnitude = bytes(value).lstrip(b"\x00")

    bit_count = (len(magnitude) - 1) * 8 + magnitude[0].bit_length() if magnitude else 0
    if bit_count > MAX_MPI_BITS:
        msg = "MPI too large"
        raise InputTooLargeError(msg, size=bit_count, limit=MAX_MPI_BITS)
    return bit_count.to_bytes(2, "big") + magnitude


def read_mpi(stream: BinaryIO) -> bytes:
    """
    Read an MPI and return its magnitude bytes.

    Raises:
        PacketMalformedError: If the MPI is truncated.
    """
    bit_count = int.from_bytes(_read_exact(stream, 2, "MPI length"), "big")
    byte_count = (bit_count + 7) // 8
    return _read_exact(stream, byte_count, "MPI data")
