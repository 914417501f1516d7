"""
Cryptographic operations for pgp_envelope.

This module provides:
- SEIPD v1 encryption (AES in OpenPGP CFB mode with MDC)
- PKESK v3 packets for RSA and ECDH recipients
"""

from pgp_envelope.crypto.seip import encrypt_seipd_packet
from pgp_envelope.crypto.session_key import build_pkesk_packet

__all__ = [
    "encrypt_seipd_packet",
    "build_pkesk_packet",
]
