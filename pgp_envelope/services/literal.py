"""
Literal Data packets (tag 11).

Body layout: format (1) || filename length (1) || filename || mtime (4, big-endian) || data.
The data is written as given; line endings are never normalized.
"""

import time
from datetime import datetime

from pgp_envelope.core.packet import write_packet
from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.exceptions import InputTooLargeError
from pgp_envelope.models.crypto import LiteralFormat, PacketTag

DEFAULT_FILENAME = "payload.file"
_MAX_FILENAME_LENGTH = 0xFF
_MAX_TIMESTAMP = 0xFFFFFFFF


def build_literal_body(
    data: bytes | bytearray,
    *,
    filename: str = DEFAULT_FILENAME,
    literal_format: LiteralFormat = LiteralFormat.UTF8,
    modified: datetime | int | None = None,
) -> bytearray:
    """
    Frame `data` as a Literal Data packet body.

    Args:
        data: Raw payload bytes.
        filename: Name recorded in the packet, UTF-8 encoded.
        literal_format: Format octet; `u` (UTF-8 text) by default.
        modified: Modification time; defaults to now.

    Raises:
        InputTooLargeError: If the filename exceeds 255 bytes or the time does not
            fit in 32 bits.
    """
    name = filename.encode("utf-8")
    if len(name) > _MAX_FILENAME_LENGTH:
        msg = "Literal data filename too long"
        raise InputTooLargeError(msg, size=len(name), limit=_MAX_FILENAME_LENGTH)

    timestamp = _to_timestamp(modified)
    if not 0 <= timestamp <= _MAX_TIMESTAMP:
        msg = "Literal data timestamp out of range"
        raise InputTooLargeError(msg, size=timestamp, limit=_MAX_TIMESTAMP)

    body = bytearray(literal_format.encode("ascii"))
    body.append(len(name))
    body += name
    body += timestamp.to_bytes(4, "big")
    body += data
    return body


def build_literal_packet(
    data: bytes | bytearray,
    *,
    filename: str = DEFAULT_FILENAME,
    literal_format: LiteralFormat = LiteralFormat.UTF8,
    modified: datetime | int | None = None,
) -> bytearray:
    """Like build_literal_body, with the tag 11 header in front."""
    body = build_literal_body(
        data, filename=filename, literal_format=literal_format, modified=modified
    )
    packet = bytearray()
    try:
        write_packet(packet, PacketTag.LITERAL_DATA, body)
    finally:
        SecureBytes.wipe(body)
    return packet


def _to_timestamp(modified: datetime | int | None) -> int:
    if modified is None:
        return int(time.time())
    if isinstance(modified, datetime):
        return int(modified.timestamp())
    return int(modified)
