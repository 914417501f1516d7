"""
ECDH session key wrapping, RFC 6637.

    V = ephemeral public point, S = shared secret
    Param = curve_OID_len || curve_OID || 18 || 03 01 KDF_hash KEK_alg
            || "Anonymous Sender    " || recipient_fingerprint
    Z = ConcatKDF(S, Param), C = AESKeyWrap(Z, PKCS5(m))
    output = MPI(V) || len(C) || C
"""

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, x25519
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash
from cryptography.hazmat.primitives.keywrap import aes_key_wrap
from cryptography.hazmat.primitives.padding import PKCS7

from pgp_envelope.core.packet import encode_mpi
from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.exceptions import CryptoFailureError
from pgp_envelope.models.crypto import PublicKeyAlgorithm
from pgp_envelope.models.keys import ECDHKeyMaterial, EllipticCurve, PublicKey

ANONYMOUS_SENDER = b"Anonymous Sender    "
_NATIVE_POINT_PREFIX = b"\x40"
_KDF_PARAMS_PREFIX = b"\x03\x01"
_PKCS5_BLOCK_BITS = 64


def wrap_session_key(recipient: PublicKey, material: ECDHKeyMaterial, message: SecureBytes) -> bytes:
    """
    Wrap the session key plaintext `m` for an ECDH recipient.

    Args:
        recipient: The recipient key (its fingerprint feeds the KDF).
        material: The recipient's ECDH parameters.
        message: `sym_algo || session_key || checksum`.

    Returns:
        The PKESK algorithm-specific fields: `MPI(V) || len(C) || C`.

    Raises:
        CryptoFailureError: If key agreement, derivation or wrapping fails.
    """
    try:
        ephemeral_point, shared_secret = _agree(material)
    except ValueError as e:
        msg = f"ECDH key agreement failed: {e}"
        raise CryptoFailureError(msg, curve=material.curve.name) from e

    padded = bytearray()
    try:
        kek = derive_kek(shared_secret, material, recipient.fingerprint)
        padder = PKCS7(_PKCS5_BLOCK_BITS).padder()
        padded += padder.update(bytes(message))
        padded += padder.finalize()
        wrapped = aes_key_wrap(kek, bytes(padded))
    except ValueError as e:
        msg = f"ECDH key wrap failed: {e}"
        raise CryptoFailureError(msg, curve=material.curve.name) from e
    finally:
        SecureBytes.wipe(padded)

    return encode_mpi(ephemeral_point) + bytes([len(wrapped)]) + wrapped


def kdf_param(material: ECDHKeyMaterial, fingerprint: bytes) -> bytes:
    """The RFC 6637 section 8 `Param` string."""
    return (
        bytes([len(material.curve.oid)])
        + material.curve.oid
        + bytes([PublicKeyAlgorithm.ECDH])
        + _KDF_PARAMS_PREFIX
        + bytes([material.kdf_hash, material.kdf_cipher])
        + ANONYMOUS_SENDER
        + fingerprint
    )


def derive_kek(shared_secret: bytes, material: ECDHKeyMaterial, fingerprint: bytes) -> bytes:
    ckdf = ConcatKDFHash(
        algorithm=material.kdf_hash.new(),
        length=material.kdf_cipher.key_size,
        otherinfo=kdf_param(material, fingerprint),
    )
    return ckdf.derive(shared_secret)


def _agree(material: ECDHKeyMaterial) -> tuple[bytes, bytes]:
    """Returns (encoded ephemeral point, shared secret)."""
    if material.curve is EllipticCurve.CURVE25519:
        recipient = x25519.X25519PublicKey.from_public_bytes(material.point[1:])
        ephemeral = x25519.X25519PrivateKey.generate()
        raw = ephemeral.public_key().public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )
        return _NATIVE_POINT_PREFIX + raw, ephemeral.exchange(recipient)

    curve = material.curve.nist_curve()
    recipient_ec = ec.EllipticCurvePublicKey.from_encoded_point(curve, material.point)
    ephemeral_ec = ec.generate_private_key(curve)
    encoded = ephemeral_ec.public_key().public_bytes(
        encoding=serialization.Encoding.X962, format=serialization.PublicFormat.UncompressedPoint
    )
    return encoded, ephemeral_ec.exchange(ec.ECDH(), recipient_ec)
