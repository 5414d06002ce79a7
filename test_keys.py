"""Loading key material from configuration."""

import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from remoteauth.config import RemoteAuthConfig
from remoteauth.crypto.keys import (
    ConfigKeyProvider, KeyHandle, KeyLoadError, KeyLoadFailure, KeyRole,
    load_public_key, private_key_to_pem, public_key_to_pem
)


def self_signed_certificate(handle: KeyHandle, cn: str = "auth.example.com") -> bytes:
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(handle.key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(handle.key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


def provider_for(**settings) -> ConfigKeyProvider:
    return ConfigKeyProvider(RemoteAuthConfig(enabled=True, **settings))


class TestInlineKeys:

    def test_loads_both_keys(self, local_key, server_key):
        provider = provider_for(
            remote_public_key=public_key_to_pem(server_key).decode(),
            local_private_key=private_key_to_pem(local_key).decode(),
        )

        remote = provider.load_remote_public_key()
        local = provider.load_local_private_key()

        assert remote.role is KeyRole.PUBLIC
        assert remote.key.public_numbers() == server_key.key.public_key().public_numbers()
        assert local.role is KeyRole.PRIVATE
        assert local.key.private_numbers() == local_key.key.private_numbers()

    def test_pkcs1_public_key(self, server_key):
        pem = server_key.key.public_key().public_bytes(
            serialization.Encoding.PEM, serialization.PublicFormat.PKCS1
        )
        assert b"BEGIN RSA PUBLIC KEY" in pem

        remote = provider_for(remote_public_key=pem.decode()).load_remote_public_key()

        assert remote.is_public

    def test_certificate(self, server_key):
        pem = self_signed_certificate(server_key)

        remote = provider_for(remote_public_key=pem.decode()).load_remote_public_key()

        assert remote.key.public_numbers() == server_key.key.public_key().public_numbers()

    def test_encrypted_private_key(self, local_key):
        pem = local_key.key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(b"passphrase"),
        )

        good = provider_for(local_private_key=pem.decode(), local_private_key_password="passphrase")
        bad = provider_for(local_private_key=pem.decode(), local_private_key_password="wrong")
        missing = provider_for(local_private_key=pem.decode())

        assert good.load_local_private_key().is_private
        assert bad.load_local_private_key().failure is KeyLoadFailure.INVALID
        assert missing.load_local_private_key().failure is KeyLoadFailure.INVALID


class TestKeyFiles:

    def test_loads_from_paths(self, tmp_path, local_key, server_key):
        remote_path = tmp_path / "remote.pub"
        local_path = tmp_path / "local.key"
        remote_path.write_bytes(public_key_to_pem(server_key))
        local_path.write_bytes(private_key_to_pem(local_key))

        provider = provider_for(remote_public_key_path=remote_path, local_private_key_path=local_path)

        assert provider.load_remote_public_key().is_public
        assert provider.load_local_private_key().is_private

    def test_inline_wins_over_path(self, tmp_path, server_key, rogue_key):
        path = tmp_path / "remote.pub"
        path.write_bytes(public_key_to_pem(rogue_key))

        provider = provider_for(
            remote_public_key=public_key_to_pem(server_key).decode(),
            remote_public_key_path=path,
        )

        remote = provider.load_remote_public_key()
        assert remote.key.public_numbers() == server_key.key.public_key().public_numbers()

    def test_unreadable_path(self, tmp_path):
        provider = provider_for(local_private_key_path=tmp_path / "does-not-exist.key")

        error = provider.load_local_private_key()

        assert isinstance(error, KeyLoadError)
        assert error.failure is KeyLoadFailure.INVALID
        assert error.role is KeyRole.PRIVATE

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pub"
        path.write_bytes(b"\n")

        error = provider_for(remote_public_key_path=path).load_remote_public_key()

        assert error.failure is KeyLoadFailure.MISSING


class TestFailures:

    def test_not_configured(self):
        provider = provider_for()

        remote = provider.load_remote_public_key()
        local = provider.load_local_private_key()

        assert remote == KeyLoadError(KeyRole.PUBLIC, KeyLoadFailure.MISSING, "Remote public key not set")
        assert local == KeyLoadError(KeyRole.PRIVATE, KeyLoadFailure.MISSING, "Local private key not set")

    @pytest.mark.parametrize("pem", [
        "garbage",
        "-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----\n",
    ])
    def test_unparsable(self, pem):
        provider = provider_for(remote_public_key=pem, local_private_key=pem)

        assert provider.load_remote_public_key().failure is KeyLoadFailure.INVALID
        assert provider.load_local_private_key().failure is KeyLoadFailure.INVALID

    def test_private_key_given_as_remote_public_key(self, local_key):
        provider = provider_for(remote_public_key=private_key_to_pem(local_key).decode())

        assert provider.load_remote_public_key().failure is KeyLoadFailure.INVALID

    def test_non_rsa_key(self):
        ec_key = ec.generate_private_key(ec.SECP256R1())
        pem = ec_key.public_key().public_bytes(
            serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
        )

        assert provider_for(remote_public_key=pem.decode()).load_remote_public_key().failure is KeyLoadFailure.INVALID

    def test_load_public_key_raises_for_non_rsa(self):
        ec_key = ec.generate_private_key(ec.SECP256R1())
        pem = ec_key.public_key().public_bytes(
            serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
        )

        with pytest.raises(ValueError):
            load_public_key(pem)
