"""
AES encryption for OpenPGP SEIPD packets.

Builds the body of a Symmetrically Encrypted Integrity Protected Data packet
(tag 18, version 1): a random prefix, the payload and a Modification Detection
Code packet, all encrypted with OpenPGP CFB (zero IV, no resynchronisation).
"""

import hashlib
import os
from collections.abc import Callable

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.exceptions import CryptoFailureError, UnsupportedAlgorithmError
from pgp_envelope.models.crypto import SessionKey

SEIPD_VERSION = 1
MDC_HEADER = b"\xd3\x14"  # new-format tag 19, length 20
MDC_HASH_SIZE = 20
MDC_PACKET_SIZE = len(MDC_HEADER) + MDC_HASH_SIZE


def encrypt_seipd_packet(
    payload: bytes | bytearray,
    session_key: SessionKey,
    *,
    random_bytes: Callable[[int], bytes] = os.urandom,
) -> bytes:
    """
    Encrypt `payload` into a SEIPD v1 packet body.

    Args:
        payload: The packet stream to protect (normally a Compressed Data packet).
        session_key: AES session key.
        random_bytes: Secure random source for the prefix.

    Returns:
        `0x01 || CFB(prefix || payload || MDC packet)`.

    Raises:
        UnsupportedAlgorithmError: If the session key is not AES.
        CryptoFailureError: If the cipher or random source fails.
    """
    if not session_key.algorithm.is_aes:
        msg = "Only AES session keys are supported"
        raise UnsupportedAlgorithmError(msg, algorithm=session_key.algorithm.name)

    block_size = session_key.block_size
    prefix = _build_prefix(block_size, random_bytes)
    plaintext = bytearray()
    try:
        plaintext += prefix
        plaintext += payload
        plaintext += MDC_HEADER
        plaintext += hashlib.sha1(plaintext).digest()
        ciphertext = _encrypt_openpgp_cfb(plaintext, session_key.key_data, block_size)
    finally:
        SecureBytes.wipe(plaintext, prefix)

    return bytes([SEIPD_VERSION]) + ciphertext


def _build_prefix(block_size: int, random_bytes: Callable[[int], bytes]) -> bytearray:
    try:
        random_prefix = random_bytes(block_size)
    except OSError as e:
        msg = f"Random source failed: {e}"
        raise CryptoFailureError(msg) from e
    if len(random_prefix) != block_size:
        msg = f"Random source returned {len(random_prefix)} bytes, expected {block_size}"
        raise CryptoFailureError(msg)
    # Last two random bytes repeat as the quick check.
    prefix = bytearray(random_prefix)
    prefix += random_prefix[-2:]
    return prefix


def _encrypt_openpgp_cfb(plaintext: bytearray, key: SecureBytes, block_size: int) -> bytes:
    iv = bytes(block_size)
    try:
        cipher = Cipher(algorithms.AES(key.buffer), modes.CFB(iv))
        encryptor = cipher.encryptor()
        return encryptor.update(plaintext) + encryptor.finalize()
    except (ValueError, TypeError) as e:
        msg = f"AES-CFB encryption failed: {e}"
        raise CryptoFailureError(msg) from e
