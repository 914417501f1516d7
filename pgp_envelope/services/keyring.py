"""
Public key ring reading and encryption key selection.

A transferable public key is a Public-Key packet followed by User ID, User
Attribute, Signature and Public-Subkey packets (RFC 4880 section 11.1).
Signatures are not verified.
"""

import io
from collections.abc import Sequence

import structlog

from pgp_envelope.core.armor import ArmorType, dearmor
from pgp_envelope.core.packet import Packet, parse_packets, read_mpi
from pgp_envelope.exceptions import (
    ArmorMalformedError,
    NoEncryptionKeyError,
    NotAPublicKeyRingError,
    PacketMalformedError,
    UnsupportedAlgorithmError,
)
from pgp_envelope.models.crypto import (
    HashAlgorithm,
    PacketTag,
    PublicKeyAlgorithm,
    SymmetricAlgorithm,
)
from pgp_envelope.models.keys import (
    ECDHKeyMaterial,
    EllipticCurve,
    PublicKey,
    PublicKeyRing,
    RSAKeyMaterial,
)

logger = structlog.get_logger(__name__)

_SUPPORTED_KEY_VERSION = 4
_MAX_KEY_BODY_LENGTH = 0xFFFF
_KDF_PARAMS_LENGTH = 3
_KDF_RESERVED = 0x01
_NATIVE_POINT_PREFIX = 0x40
_UNCOMPRESSED_POINT_PREFIX = 0x04
_KDF_HASHES = (HashAlgorithm.SHA256, HashAlgorithm.SHA384, HashAlgorithm.SHA512)
_KDF_CIPHERS = (SymmetricAlgorithm.AES_128, SymmetricAlgorithm.AES_192, SymmetricAlgorithm.AES_256)
_RING_TAGS = (
    PacketTag.USER_ID,
    PacketTag.USER_ATTRIBUTE,
    PacketTag.SIGNATURE,
    PacketTag.TRUST,
    PacketTag.PUBLIC_SUBKEY,
)


def read_public_key_ring(armored: str | bytes) -> PublicKeyRing:
    """
    Dearmor and parse a `PGP PUBLIC KEY BLOCK`.

    Args:
        armored: ASCII-armored public key block.

    Returns:
        The first key ring in the block.

    Raises:
        ArmorMalformedError: If the armor is invalid or of another type.
        ArmorChecksumMismatchError: If the CRC-24 does not match.
        NotAPublicKeyRingError: If the first packet is not a Public-Key packet.
        PacketMalformedError: If the packet stream is invalid.
    """
    armor_type, body = dearmor(armored)
    if armor_type != ArmorType.PUBLIC_KEY_BLOCK:
        msg = f"Expected {ArmorType.PUBLIC_KEY_BLOCK}, got {armor_type}"
        raise ArmorMalformedError(msg)
    return parse_public_key_ring(parse_packets(body))


def parse_public_key_ring(packets: Sequence[Packet]) -> PublicKeyRing:
    """
    Build a PublicKeyRing from a decoded packet sequence.

    A second Public-Key packet ends the ring; anything after it is ignored.
    """
    if not packets or packets[0].tag != PacketTag.PUBLIC_KEY:
        tag = packets[0].tag if packets else None
        msg = "Input does not contain a PGP public key"
        raise NotAPublicKeyRingError(msg, first_tag=tag)

    primary = parse_public_key_packet(packets[0].body)
    subkeys: list[PublicKey] = []
    user_ids: list[str] = []

    for index in range(1, len(packets)):
        packet = packets[index]
        if packet.tag == PacketTag.PUBLIC_KEY:
            logger.warning(
                "Ignoring additional key rings in public key block",
                ignored_packets=len(packets) - index,
            )
            break
        if packet.tag not in _RING_TAGS:
            msg = f"Unexpected packet in public key ring: tag {packet.tag}"
            raise PacketMalformedError(msg, index=index)
        if packet.tag == PacketTag.USER_ID:
            user_ids.append(packet.body.decode("utf-8", errors="replace"))
        elif packet.tag == PacketTag.PUBLIC_SUBKEY:
            _require_binding_signature(packets, index)
            subkeys.append(parse_public_key_packet(packet.body, is_subkey=True))

    ring = PublicKeyRing(primary=primary, subkeys=tuple(subkeys), user_ids=tuple(user_ids))
    logger.debug(
        "Parsed public key ring",
        key_id=primary.key_id_hex,
        subkeys=len(subkeys),
        user_ids=len(user_ids),
    )
    return ring


def _require_binding_signature(packets: Sequence[Packet], index: int) -> None:
    following = packets[index + 1] if index + 1 < len(packets) else None
    if following is not None and following.tag == PacketTag.SIGNATURE:
        return
    msg = "Public subkey is not followed by a binding signature"
    raise PacketMalformedError(msg, index=index)


def parse_public_key_packet(body: bytes, *, is_subkey: bool = False) -> PublicKey:
    """
    Parse a Public-Key or Public-Subkey packet body.

    Key material is decoded for RSA and ECDH on known curves; other algorithms are
    kept with `material=None`.

    Raises:
        UnsupportedAlgorithmError: If the key version is not 4.
        PacketMalformedError: If the body is truncated, too long for a v4
            fingerprint, or has bytes after the key fields.
    """
    if len(body) < 6:
        msg = f"Public key packet too short: {len(body)} bytes"
        raise PacketMalformedError(msg)
    if len(body) > _MAX_KEY_BODY_LENGTH:
        msg = f"Public key packet too long: {len(body)} bytes"
        raise PacketMalformedError(msg)

    version = body[0]
    if version != _SUPPORTED_KEY_VERSION:
        msg = f"Unsupported public key version: {version}"
        raise UnsupportedAlgorithmError(msg, algorithm=f"v{version}")

    created = int.from_bytes(body[1:5], "big")
    algorithm_id = body[5]
    stream = io.BytesIO(body[6:])

    material: RSAKeyMaterial | ECDHKeyMaterial | None = None
    if algorithm_id in (PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN, PublicKeyAlgorithm.RSA_ENCRYPT_ONLY):
        material = _parse_rsa_material(stream)
    elif algorithm_id == PublicKeyAlgorithm.ECDH:
        material = _parse_ecdh_material(stream)
    else:
        stream.seek(0, io.SEEK_END)

    if trailing := len(body) - 6 - stream.tell():
        msg = "Trailing bytes after public key fields"
        raise PacketMalformedError(msg, trailing=trailing)

    return PublicKey(
        version=version,
        created=created,
        algorithm_id=algorithm_id,
        body=bytes(body),
        material=material,
        is_subkey=is_subkey,
    )


def _parse_rsa_material(stream: io.BytesIO) -> RSAKeyMaterial:
    n = int.from_bytes(read_mpi(stream), "big")
    e = int.from_bytes(read_mpi(stream), "big")
    if n == 0 or e == 0:
        msg = "RSA key has an empty modulus or exponent"
        raise PacketMalformedError(msg)
    return RSAKeyMaterial(n=n, e=e)


def _parse_ecdh_material(stream: io.BytesIO) -> ECDHKeyMaterial | None:
    oid = _read_length_prefixed(stream, "curve OID")
    point = read_mpi(stream)
    kdf_params = _read_length_prefixed(stream, "KDF parameters")

    try:
        curve = EllipticCurve(oid)
    except ValueError:
        logger.debug("Unknown ECDH curve", oid=oid.hex())
        return None

    if len(kdf_params) != _KDF_PARAMS_LENGTH or kdf_params[0] != _KDF_RESERVED:
        msg = "Invalid ECDH KDF parameters"
        raise PacketMalformedError(msg, kdf=kdf_params.hex())

    kdf_hash_id, kdf_cipher_id = kdf_params[1], kdf_params[2]
    if kdf_hash_id not in _KDF_HASHES or kdf_cipher_id not in _KDF_CIPHERS:
        logger.debug("Unsupported ECDH KDF parameters", hash=kdf_hash_id, cipher=kdf_cipher_id)
        return None

    expected_prefix = _NATIVE_POINT_PREFIX if curve.is_native else _UNCOMPRESSED_POINT_PREFIX
    if len(point) != curve.point_size or point[0] != expected_prefix:
        msg = f"Invalid ECDH point encoding for {curve.name}"
        raise PacketMalformedError(msg, size=len(point))

    return ECDHKeyMaterial(
        curve=curve,
        point=point,
        kdf_hash=HashAlgorithm(kdf_hash_id),
        kdf_cipher=SymmetricAlgorithm(kdf_cipher_id),
    )


def _read_length_prefixed(stream: io.BytesIO, what: str) -> bytes:
    size_byte = stream.read(1)
    if not size_byte or size_byte[0] in (0, 0xFF):
        msg = f"Missing or reserved {what} length"
        raise PacketMalformedError(msg)
    data = stream.read(size_byte[0])
    if len(data) != size_byte[0]:
        msg = f"Truncated {what}"
        raise PacketMalformedError(msg)
    return data


def select_encryption_key(ring: PublicKeyRing) -> PublicKey:
    """
    Pick the key to encrypt to.

    Returns the first RSA (1, 2) or ECDH (18) key in `[primary, *subkeys]` order. A
    sign-only primary never qualifies, so an encryption subkey is used in that case.

    Raises:
        UnsupportedAlgorithmError: If the chosen key has parameters this library
            cannot use, or only unimplemented encryption algorithms are present.
        NoEncryptionKeyError: If no key on the ring can encrypt.
    """
    for key in ring.keys:
        if not key.is_encryption_key:
            continue
        if key.material is None:
            msg = "Encryption key uses unsupported parameters"
            raise UnsupportedAlgorithmError(msg, algorithm=key.algorithm_id)
        logger.debug(
            "Selected encryption key",
            key_id=key.key_id_hex,
            algorithm=key.algorithm_id,
            is_subkey=key.is_subkey,
        )
        return key

    unimplemented = [
        key.algorithm_id
        for key in ring.keys
        if key.algorithm is not None and key.algorithm.can_encrypt
    ]
    if unimplemented:
        msg = "Public key only offers unsupported encryption algorithms"
        raise UnsupportedAlgorithmError(msg, algorithm=unimplemented[0])

    msg = "No encryption-capable key found on the key ring"
    raise NoEncryptionKeyError(msg, key_id=ring.primary.key_id_hex)
