"""
Message-building services: key ring reading and the inner packet framers.
"""

from pgp_envelope.services.compression import build_compressed_packet
from pgp_envelope.services.keyring import read_public_key_ring, select_encryption_key
from pgp_envelope.services.literal import build_literal_packet

__all__ = [
    "read_public_key_ring",
    "select_encryption_key",
    "build_literal_packet",
    "build_compressed_packet",
]
