"""
Public-Key Encrypted Session Key (PKESK) packets.

The PKESK packet carries the symmetric key used for the SEIPD packet, encrypted to
the recipient's public key. Its plaintext is always

    sym_algo (1) || session_key || checksum (2, sum of key bytes mod 65536)
"""

import structlog
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pgp_envelope.core.packet import encode_mpi
from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.crypto import ecdh
from pgp_envelope.exceptions import (
    CryptoFailureError,
    UnsupportedAlgorithmError,
)
from pgp_envelope.models.crypto import PKESKPacket, PublicKeyAlgorithm, SessionKey
from pgp_envelope.models.keys import ECDHKeyMaterial, PublicKey, RSAKeyMaterial

logger = structlog.get_logger(__name__)

PKESK_VERSION = 3


def build_pkesk_packet(recipient: PublicKey, session_key: SessionKey) -> PKESKPacket:
    """
    Encrypt `session_key` to `recipient`.

    Args:
        recipient: The selected encryption key.
        session_key: The message's session key.

    Returns:
        A version 3 PKESKPacket.

    Raises:
        UnsupportedAlgorithmError: If the recipient is not RSA or ECDH.
        CryptoFailureError: If the public-key operation fails.
    """
    algorithm = recipient.algorithm
    material = recipient.material

    with build_session_key_payload(session_key) as payload:
        if isinstance(material, RSAKeyMaterial) and algorithm in (
            PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN,
            PublicKeyAlgorithm.RSA_ENCRYPT_ONLY,
        ):
            encrypted = _wrap_rsa(material, payload)
        elif isinstance(material, ECDHKeyMaterial) and algorithm == PublicKeyAlgorithm.ECDH:
            encrypted = ecdh.wrap_session_key(recipient, material, payload)
        else:
            msg = "Cannot encrypt a session key to this key"
            raise UnsupportedAlgorithmError(msg, algorithm=recipient.algorithm_id)

    logger.debug(
        "Wrapped session key",
        key_id=recipient.key_id_hex,
        algorithm=recipient.algorithm_id,
        symmetric=session_key.algorithm.name,
    )
    return PKESKPacket(
        version=PKESK_VERSION,
        key_id=recipient.key_id,
        algorithm=PublicKeyAlgorithm(recipient.algorithm_id),
        encrypted_session_key=encrypted,
    )


def build_session_key_payload(session_key: SessionKey) -> SecureBytes:
    """`sym_algo || key || checksum_be16`, in a buffer the caller must clear."""
    payload = bytearray([session_key.algorithm])
    try:
        payload += session_key.key_data.buffer
        payload += session_key.checksum.to_bytes(2, "big")
        return SecureBytes(payload)
    finally:
        SecureBytes.wipe(payload)


def _wrap_rsa(material: RSAKeyMaterial, payload: SecureBytes) -> bytes:
    """PKCS#1 v1.5 type 2 padding, then `m^e mod n`, as one MPI."""
    try:
        public_key = rsa.RSAPublicNumbers(material.e, material.n).public_key()
        ciphertext = public_key.encrypt(bytes(payload), padding.PKCS1v15())
    except (ValueError, TypeError) as e:
        msg = f"RSA session key encryption failed: {e}"
        raise CryptoFailureError(msg, key_bits=material.size_in_bits) from e
    return encode_mpi(ciphertext)
