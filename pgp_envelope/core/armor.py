"""
Radix-64 ("ASCII armor") codec for OpenPGP data, RFC 4880 section 6.

Armored blocks look like:

    -----BEGIN PGP MESSAGE-----
    Key: Value

    <base64 body, at most 76 characters per line>
    =<base64 of the CRC-24 of the body>
    -----END PGP MESSAGE-----
"""

import base64
import binascii
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, StrEnum, auto

from pgp_envelope.exceptions import ArmorChecksumMismatchError, ArmorMalformedError

CRC24_INIT = 0xB704CE
CRC24_POLY = 0x864CFB
_CRC24_MASK = 0xFFFFFF

_LINE_LENGTH = 76
_EOL = "\r\n"

_BEGIN_RE = re.compile(r"^-----BEGIN (?P<type>[A-Z0-9 ,]+)-----$")
_END_RE = re.compile(r"^-----END (?P<type>[A-Z0-9 ,]+)-----$")
_HEADER_RE = re.compile(r"^(?P<key>[^:\s][^:]*):(?: (?P<value>.*))?$")
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
_CRC_RE = re.compile(r"^=(?P<crc>[A-Za-z0-9+/]{4})$")


class ArmorType(StrEnum):
    """Block types this library reads and writes."""

    PUBLIC_KEY_BLOCK = "PGP PUBLIC KEY BLOCK"
    MESSAGE = "PGP MESSAGE"


def _build_crc24_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= CRC24_POLY
        table.append(crc & _CRC24_MASK)
    return tuple(table)


_CRC24_TABLE = _build_crc24_table()


def crc24(data: bytes | bytearray | memoryview) -> int:
    """
    Compute the OpenPGP CRC-24 of `data`.

    Polynomial 0x864CFB, initial value 0xB704CE, processed MSB first.
    """
    crc = CRC24_INIT
    for byte in bytes(data):
        crc = ((crc << 8) & _CRC24_MASK) ^ _CRC24_TABLE[(crc >> 16) ^ byte]
    return crc


@dataclass(frozen=True)
class ArmoredBlock:
    """A decoded armored block."""

    armor_type: str
    body: bytes
    headers: tuple[tuple[str, str], ...] = field(default=())


def armor(
    armor_type: ArmorType | str,
    body: bytes | bytearray,
    *,
    headers: Iterable[tuple[str, str]] = (),
) -> str:
    """
    Wrap binary OpenPGP data in an ASCII armor envelope.

    Args:
        armor_type: Block type, e.g. ArmorType.MESSAGE.
        body: Binary packet stream.
        headers: Optional `(key, value)` armor headers.

    Returns:
        The armored text; every line ends with CRLF.
    """
    armor_type = str(armor_type)
    encoded = base64.b64encode(body).decode("ascii")
    checksum = base64.b64encode(crc24(body).to_bytes(3, "big")).decode("ascii")

    lines = [f"-----BEGIN {armor_type}-----"]
    lines.extend(f"{key}: {value}" for key, value in headers)
    lines.append("")
    lines.extend(encoded[i : i + _LINE_LENGTH] for i in range(0, len(encoded), _LINE_LENGTH))
    lines.append(f"={checksum}")
    lines.append(f"-----END {armor_type}-----")
    return _EOL.join(lines) + _EOL


class _State(Enum):
    SEEK_BEGIN = auto()
    IN_HEADERS = auto()
    IN_BODY = auto()
    IN_CRC = auto()
    SEEK_END = auto()
    DONE = auto()


class _ArmorParser:
    """Line-oriented parser for one armored block."""

    def __init__(self) -> None:
        self.state = _State.SEEK_BEGIN
        self.armor_type: str | None = None
        self.headers: list[tuple[str, str]] = []
        self.body_parts: list[str] = []
        self.crc: str | None = None

    def feed(self, line: str) -> None:
        match self.state:
            case _State.SEEK_BEGIN:
                self._seek_begin(line)
            case _State.IN_HEADERS:
                self._in_headers(line)
            case _State.IN_BODY:
                self._in_body(line)
            case _State.IN_CRC | _State.SEEK_END:
                self._seek_end(line)
            case _State.DONE:
                pass

    def _seek_begin(self, line: str) -> None:
        if (match := _BEGIN_RE.match(line.strip())) is None:
            return
        self.armor_type = match["type"]
        self.state = _State.IN_HEADERS

    def _in_headers(self, line: str) -> None:
        if not line.strip():
            self.state = _State.IN_BODY
            return
        self._reject_markers(line)
        if (match := _HEADER_RE.match(line)) is None:
            msg = "Invalid armor header line"
            raise ArmorMalformedError(msg, line=line[:80])
        self.headers.append((match["key"], match["value"] or ""))

    def _in_body(self, line: str) -> None:
        stripped = "".join(line.split())
        if not stripped:
            return
        if (match := _CRC_RE.match(stripped)) is not None:
            self.crc = match["crc"]
            self.state = _State.IN_CRC
            return
        if _END_RE.match(line.strip()):
            msg = "Armor checksum line missing"
            raise ArmorMalformedError(msg)
        self._reject_markers(line)
        if _BASE64_RE.match(stripped) is None:
            msg = "Invalid base64 in armor body"
            raise ArmorMalformedError(msg, line=stripped[:80])
        self.body_parts.append(stripped)

    def _seek_end(self, line: str) -> None:
        stripped = line.strip()
        if not stripped:
            self.state = _State.SEEK_END
            return
        if (match := _END_RE.match(stripped)) is None:
            msg = "Unexpected line after armor checksum"
            raise ArmorMalformedError(msg, line=stripped[:80])
        if match["type"] != self.armor_type:
            msg = "Armor END type does not match BEGIN type"
            raise ArmorMalformedError(msg, begin=self.armor_type, end=match["type"])
        self.state = _State.DONE

    @staticmethod
    def _reject_markers(line: str) -> None:
        stripped = line.strip()
        if _BEGIN_RE.match(stripped):
            msg = "Duplicated armor BEGIN marker"
            raise ArmorMalformedError(msg)
        if _END_RE.match(stripped):
            msg = "Armor END marker before body"
            raise ArmorMalformedError(msg)


def dearmor_with_headers(text: str | bytes) -> ArmoredBlock:
    """
    Decode the first armored block found in `text`.

    Accepts LF or CRLF line endings. Text before the BEGIN line and after the END
    line is ignored.

    Raises:
        ArmorMalformedError: Missing or out-of-order markers, headers or checksum.
        ArmorChecksumMismatchError: The CRC-24 line does not match the body.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = "Armored text is not valid UTF-8"
            raise ArmorMalformedError(msg) from e

    parser = _ArmorParser()
    for line in text.splitlines():
        parser.feed(line)
        if parser.state is _State.DONE:
            break

    if parser.state is _State.SEEK_BEGIN:
        msg = "Armor BEGIN marker not found"
        raise ArmorMalformedError(msg)
    if parser.state is not _State.DONE:
        msg = "Armor END marker not found"
        raise ArmorMalformedError(msg, state=parser.state.name)

    body = _decode_base64("".join(parser.body_parts))
    expected = int.from_bytes(_decode_base64(parser.crc or ""), "big")
    actual = crc24(body)
    if expected != actual:
        msg = "Armor checksum mismatch"
        raise ArmorChecksumMismatchError(msg, expected=expected, actual=actual)

    return ArmoredBlock(armor_type=parser.armor_type or "", body=body, headers=tuple(parser.headers))


def dearmor(text: str | bytes) -> tuple[str, bytes]:
    """Decode an armored block into `(armor_type, body)`."""
    block = dearmor_with_headers(text)
    return block.armor_type, block.body


def _decode_base64(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        msg = f"Invalid base64 in armor: {e}"
        raise ArmorMalformedError(msg) from e
