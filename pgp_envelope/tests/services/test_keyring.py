import pgpy
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, x25519

from pgp_envelope.core.armor import ArmorType, armor
from pgp_envelope.core.packet import parse_packets
from pgp_envelope.exceptions import (
    ArmorMalformedError,
    NoEncryptionKeyError,
    NotAPublicKeyRingError,
    PacketMalformedError,
    UnsupportedAlgorithmError,
)
from pgp_envelope.models.crypto import HashAlgorithm, PacketTag, PublicKeyAlgorithm, SymmetricAlgorithm
from pgp_envelope.models.keys import ECDHKeyMaterial, EllipticCurve, RSAKeyMaterial
from pgp_envelope.services.keyring import (
    parse_public_key_packet,
    parse_public_key_ring,
    read_public_key_ring,
    select_encryption_key,
)
from pgp_envelope.tests.utils.packets import (
    armored_key_block,
    dsa_key_body,
    ecdh_key_body,
    elgamal_key_body,
    fingerprint_of,
    key_body,
    packet_stream,
    rsa_key_body,
    signature,
    user_id,
)

CURVE25519_OID = bytes.fromhex("2b060104019755010501")
P256_OID = bytes.fromhex("2a8648ce3d030107")


def _x25519_point() -> bytes:
    public = x25519.X25519PrivateKey.generate().public_key()
    raw = public.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
    return b"\x40" + raw


def _p256_point() -> bytes:
    public = ec.generate_private_key(ec.SECP256R1()).public_key()
    return public.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint)


def test_read_public_key_ring_from_pgpy_rsa_key(rsa_key: pgpy.PGPKey, armored_public_key) -> None:
    ring = read_public_key_ring(armored_public_key(rsa_key))

    assert ring.primary.fingerprint_hex == fingerprint_of(rsa_key)
    assert ring.user_ids == ("Test Recipient <recipient@example.com>",)
    assert ring.subkeys == ()
    assert isinstance(ring.primary.material, RSAKeyMaterial)
    assert ring.primary.material.size_in_bits == 2048


def test_read_public_key_ring_from_pgpy_curve25519_key(curve25519_key: pgpy.PGPKey, armored_public_key) -> None:
    ring = read_public_key_ring(armored_public_key(curve25519_key))
    (pgpy_subkey,) = curve25519_key.subkeys.values()

    assert ring.primary.algorithm == PublicKeyAlgorithm.EDDSA
    assert len(ring.subkeys) == 1
    subkey = ring.subkeys[0]
    assert subkey.is_subkey
    assert subkey.fingerprint_hex == fingerprint_of(pgpy_subkey)
    assert isinstance(subkey.material, ECDHKeyMaterial)
    assert subkey.material.curve is EllipticCurve.CURVE25519
    assert len(subkey.material.point) == 33


def test_select_encryption_key_prefers_usable_primary(rsa_key: pgpy.PGPKey, armored_public_key) -> None:
    ring = read_public_key_ring(armored_public_key(rsa_key))

    assert select_encryption_key(ring) is ring.primary


def test_select_encryption_key_skips_sign_only_primary(p256_key: pgpy.PGPKey, armored_public_key) -> None:
    ring = read_public_key_ring(armored_public_key(p256_key))
    (pgpy_subkey,) = p256_key.subkeys.values()

    selected = select_encryption_key(ring)

    assert selected.is_subkey
    assert selected.key_id_hex == pgpy_subkey.fingerprint.keyid.upper()
    assert selected.material.curve is EllipticCurve.NIST_P256


def test_select_encryption_key_uses_first_qualifying_key() -> None:
    first = rsa_key_body(PublicKeyAlgorithm.RSA_ENCRYPT_ONLY)
    second = rsa_key_body()
    ring = parse_public_key_ring(
        parse_packets(
            packet_stream(
                (PacketTag.PUBLIC_KEY, dsa_key_body()),
                user_id(),
                signature(),
                (PacketTag.PUBLIC_SUBKEY, first),
                signature(),
                (PacketTag.PUBLIC_SUBKEY, second),
                signature(),
            )
        )
    )

    assert select_encryption_key(ring).body == first


def test_dsa_only_ring_has_no_encryption_key() -> None:
    ring = read_public_key_ring(armored_key_block((PacketTag.PUBLIC_KEY, dsa_key_body()), user_id(), signature()))

    with pytest.raises(NoEncryptionKeyError, match="No encryption-capable key"):
        select_encryption_key(ring)


def test_elgamal_only_encryption_is_unsupported() -> None:
    ring = read_public_key_ring(
        armored_key_block(
            (PacketTag.PUBLIC_KEY, dsa_key_body()),
            user_id(),
            signature(),
            (PacketTag.PUBLIC_SUBKEY, elgamal_key_body()),
            signature(),
        )
    )

    with pytest.raises(UnsupportedAlgorithmError, match="unsupported encryption algorithms") as exc_info:
        select_encryption_key(ring)

    assert exc_info.value.algorithm == PublicKeyAlgorithm.ELGAMAL_ENCRYPT_ONLY


def test_ecdh_key_on_unknown_curve_is_unsupported() -> None:
    body = ecdh_key_body(bytes.fromhex("2b8104000a"), b"\x04" + bytes(64))
    ring = read_public_key_ring(
        armored_key_block((PacketTag.PUBLIC_KEY, dsa_key_body()), (PacketTag.PUBLIC_SUBKEY, body), signature())
    )

    assert ring.subkeys[0].material is None
    with pytest.raises(UnsupportedAlgorithmError, match="unsupported parameters"):
        select_encryption_key(ring)


def test_second_key_ring_is_ignored() -> None:
    first = rsa_key_body()
    ring = read_public_key_ring(
        armored_key_block(
            (PacketTag.PUBLIC_KEY, first),
            user_id("first"),
            signature(),
            (PacketTag.PUBLIC_KEY, rsa_key_body()),
            user_id("second"),
        )
    )

    assert ring.primary.body == first
    assert ring.user_ids == ("first",)


def test_ring_must_start_with_public_key() -> None:
    with pytest.raises(NotAPublicKeyRingError, match="does not contain a PGP public key"):
        read_public_key_ring(armored_key_block(user_id(), (PacketTag.PUBLIC_KEY, rsa_key_body())))


def test_empty_key_block_is_not_a_key_ring() -> None:
    with pytest.raises(NotAPublicKeyRingError):
        read_public_key_ring(armor(ArmorType.PUBLIC_KEY_BLOCK, b""))


def test_read_public_key_ring_rejects_message_armor() -> None:
    with pytest.raises(ArmorMalformedError, match="Expected PGP PUBLIC KEY BLOCK"):
        read_public_key_ring(armor(ArmorType.MESSAGE, packet_stream((PacketTag.PUBLIC_KEY, dsa_key_body()))))


def test_subkey_without_binding_signature_is_rejected() -> None:
    with pytest.raises(PacketMalformedError, match="not followed by a binding signature"):
        read_public_key_ring(
            armored_key_block(
                (PacketTag.PUBLIC_KEY, dsa_key_body()),
                user_id(),
                signature(),
                (PacketTag.PUBLIC_SUBKEY, rsa_key_body()),
            )
        )


def test_unexpected_packet_in_ring_is_rejected() -> None:
    with pytest.raises(PacketMalformedError, match="Unexpected packet in public key ring: tag 11"):
        read_public_key_ring(armored_key_block((PacketTag.PUBLIC_KEY, dsa_key_body()), (PacketTag.LITERAL_DATA, b"x")))


def test_parse_public_key_packet_rejects_v3_key() -> None:
    with pytest.raises(UnsupportedAlgorithmError, match="Unsupported public key version: 3") as exc_info:
        parse_public_key_packet(key_body(PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN, 0xC5, 3, version=3))

    assert exc_info.value.algorithm == "v3"


def test_parse_public_key_packet_rejects_short_body() -> None:
    with pytest.raises(PacketMalformedError, match="too short"):
        parse_public_key_packet(b"\x04\x00\x00")


def test_parse_public_key_packet_rejects_truncated_rsa_modulus() -> None:
    body = key_body(PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN)[:6] + b"\x08\x00\x01\x02"

    with pytest.raises(PacketMalformedError, match="Truncated MPI data"):
        parse_public_key_packet(body)


def test_parse_public_key_packet_reads_ecdh_parameters() -> None:
    point = _p256_point()

    key = parse_public_key_packet(ecdh_key_body(P256_OID, point, kdf=b"\x03\x01\x09\x08"), is_subkey=True)

    assert key.material == ECDHKeyMaterial(
        curve=EllipticCurve.NIST_P256,
        point=point,
        kdf_hash=HashAlgorithm.SHA384,
        kdf_cipher=SymmetricAlgorithm.AES_192,
    )


def test_parse_public_key_packet_rejects_bad_kdf_parameters() -> None:
    with pytest.raises(PacketMalformedError, match="Invalid ECDH KDF parameters"):
        parse_public_key_packet(ecdh_key_body(CURVE25519_OID, _x25519_point(), kdf=b"\x03\x02\x08\x09"))


def test_parse_public_key_packet_keeps_unsupported_kdf_without_material() -> None:
    key = parse_public_key_packet(ecdh_key_body(CURVE25519_OID, _x25519_point(), kdf=b"\x03\x01\x02\x09"))

    assert key.material is None


def test_parse_public_key_packet_rejects_wrong_point_prefix() -> None:
    point = b"\x04" + _x25519_point()[1:]

    with pytest.raises(PacketMalformedError, match="Invalid ECDH point encoding for CURVE25519"):
        parse_public_key_packet(ecdh_key_body(CURVE25519_OID, point))


def test_oversized_key_packet_is_rejected_before_fingerprinting() -> None:
    key_block = armored_key_block(
        (PacketTag.PUBLIC_KEY, key_body(PublicKeyAlgorithm.DSA, 0x1234, extra=bytes(70_000))),
        user_id(),
        signature(),
    )

    with pytest.raises(PacketMalformedError, match="Public key packet too long: 70010 bytes"):
        read_public_key_ring(key_block)


def test_parse_public_key_packet_rejects_trailing_bytes() -> None:
    body = rsa_key_body() + b"\x00\x01"

    with pytest.raises(PacketMalformedError, match="Trailing bytes after public key fields") as exc_info:
        parse_public_key_packet(body)

    assert exc_info.value.context == {"trailing": 2}


def test_parse_public_key_packet_rejects_trailing_bytes_after_ecdh_fields() -> None:
    with pytest.raises(PacketMalformedError, match="Trailing bytes"):
        parse_public_key_packet(ecdh_key_body(CURVE25519_OID, _x25519_point()) + b"\xff")
