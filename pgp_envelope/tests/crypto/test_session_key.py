import io
from collections.abc import Iterator

import pytest
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pgp_envelope.core.packet import read_mpi
from pgp_envelope.core.secure_bytes import SecureBytes
from pgp_envelope.crypto.session_key import (
    PKESK_VERSION,
    build_pkesk_packet,
    build_session_key_payload,
)
from pgp_envelope.exceptions import UnsupportedAlgorithmError
from pgp_envelope.models.crypto import PublicKeyAlgorithm, SessionKey, SymmetricAlgorithm
from pgp_envelope.services.keyring import parse_public_key_packet
from pgp_envelope.tests.utils.packets import dsa_key_body, key_body

SESSION_KEY_BYTES = bytes(range(1, 33))


@pytest.fixture(scope="module")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def session_key() -> Iterator[SessionKey]:
    key = SessionKey(algorithm=SymmetricAlgorithm.AES_256, key_data=SecureBytes(SESSION_KEY_BYTES))
    yield key
    key.clear()


def test_build_session_key_payload_layout(session_key: SessionKey) -> None:
    with build_session_key_payload(session_key) as payload:
        data = bytes(payload)

    checksum = sum(SESSION_KEY_BYTES) % 65536
    assert data == b"\x09" + SESSION_KEY_BYTES + checksum.to_bytes(2, "big")


def test_build_pkesk_packet_for_rsa_recipient(rsa_private_key: rsa.RSAPrivateKey, session_key: SessionKey) -> None:
    numbers = rsa_private_key.public_key().public_numbers()
    recipient = parse_public_key_packet(key_body(PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN, numbers.n, numbers.e))

    packet = build_pkesk_packet(recipient, session_key)

    assert packet.version == PKESK_VERSION
    assert packet.key_id == recipient.key_id
    assert packet.algorithm == PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN
    ciphertext = read_mpi(io.BytesIO(packet.encrypted_session_key))
    ciphertext = ciphertext.rjust(256, b"\x00")
    plaintext = rsa_private_key.decrypt(ciphertext, padding.PKCS1v15())
    checksum = sum(SESSION_KEY_BYTES) % 65536
    assert plaintext == b"\x09" + SESSION_KEY_BYTES + checksum.to_bytes(2, "big")


def test_build_pkesk_packet_rejects_key_without_encryption_material(session_key: SessionKey) -> None:
    recipient = parse_public_key_packet(dsa_key_body())

    with pytest.raises(UnsupportedAlgorithmError, match="Cannot encrypt a session key") as exc_info:
        build_pkesk_packet(recipient, session_key)

    assert exc_info.value.algorithm == PublicKeyAlgorithm.DSA

