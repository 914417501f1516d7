"""Wire-format building blocks: armor, packet framing and zeroable buffers."""

from pgp_envelope.core.armor import ArmoredBlock, ArmorType, armor, crc24, dearmor
from pgp_envelope.core.packet import Packet, parse_packets, read_packet, write_packet
from pgp_envelope.core.secure_bytes import SecureBytes

__all__ = [
    "ArmoredBlock",
    "ArmorType",
    "armor",
    "crc24",
    "dearmor",
    "Packet",
    "parse_packets",
    "read_packet",
    "write_packet",
    "SecureBytes",
]
