"""Shared fixtures: RSA key pairs, a fake remote server and a counting user directory."""

import json

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa as rsa_keys
from cryptography.hazmat.backends import default_backend

from remoteauth.common.utils import b64d, b64e
from remoteauth.config import RemoteAuthConfig
from remoteauth.crypto import rsa, sign
from remoteauth.crypto.keys import KeyHandle
from remoteauth.crypto.sign import SignatureEncoding
from remoteauth.storage.db import InMemoryUserDirectory, LocalUser
from remoteauth.transport import TransportResponse


def generate_key() -> KeyHandle:
    private_key = rsa_keys.generate_private_key(
        public_exponent=65537,
        key_size=2048,
        backend=default_backend()
    )
    return KeyHandle.private(private_key)


@pytest.fixture(scope="session")
def local_key() -> KeyHandle:
    """Our installation's private key."""
    return generate_key()


@pytest.fixture(scope="session")
def server_key() -> KeyHandle:
    """The remote server's private key."""
    return generate_key()


@pytest.fixture(scope="session")
def rogue_key() -> KeyHandle:
    """A key pair nobody trusts."""
    return generate_key()


class StaticKeyProvider:
    def __init__(self, remote_public_key, local_private_key):
        self.remote_public_key = remote_public_key
        self.local_private_key = local_private_key

    def load_remote_public_key(self):
        return self.remote_public_key

    def load_local_private_key(self):
        return self.local_private_key


@pytest.fixture
def key_provider(local_key, server_key):
    return StaticKeyProvider(server_key.public_handle(), local_key)


class FakeRemoteServer:
    """
    Transport that plays the remote identity server.

    Every request is decrypted with the server key and its signature checked
    against the client key; ``handler`` then builds the reply from the
    decoded request.
    """

    def __init__(self, server_key: KeyHandle, client_public_key: KeyHandle):
        self.server_key = server_key
        self.client_public_key = client_public_key
        self.calls = []
        self.handler = self.reply_success

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def post(self, url, data, timeout):
        plaintext = rsa.decrypt(b64d(data["message"]), self.server_key)
        request = {
            "url": url,
            "form": data,
            "timeout": timeout,
            "plaintext": plaintext,
            "payload": json.loads(plaintext),
            "signature_valid": sign.verify(plaintext, b64d(data["signature"]), self.client_public_key),
        }
        self.calls.append(request)
        return self.handler(request)

    def sealed_body(self, inner: dict, signer: KeyHandle = None, encrypt_to: KeyHandle = None) -> bytes:
        plaintext = json.dumps(inner).encode("utf-8")
        ciphertext = rsa.encrypt(plaintext, encrypt_to or self.client_public_key)
        signature = sign.sign(plaintext, signer or self.server_key, SignatureEncoding.BASE64)
        return json.dumps({"code": 200, "message": b64e(ciphertext), "signature": signature}).encode("utf-8")

    def reply_success(self, request):
        return TransportResponse(200, self.sealed_body({"username": request["payload"]["username"]}))

    @staticmethod
    def reply_json(body: dict, status_code: int = 200):
        return lambda request: TransportResponse(status_code, json.dumps(body).encode("utf-8"))


@pytest.fixture
def remote_server(server_key, local_key):
    return FakeRemoteServer(server_key, local_key.public_handle())


class CountingDirectory(InMemoryUserDirectory):
    def __init__(self, users=()):
        super().__init__(users)
        self.lookups = []

    def resolve_by_username(self, username):
        self.lookups.append(username)
        return super().resolve_by_username(username)


@pytest.fixture
def directory():
    return CountingDirectory([
        LocalUser(username="alice", email="alice@example.com"),
        LocalUser(username="bob"),
    ])


@pytest.fixture
def config():
    return RemoteAuthConfig(
        enabled=True,
        server="https://auth.example.com/",
        identifier="install-42",
        timeout=5.0,
    )


ENV_VARS = [
    "REMOTE_AUTH_ENABLED", "REMOTE_AUTH_SERVER", "REMOTE_AUTH_ENDPOINT", "REMOTE_AUTH_IDENTIFIER",
    "REMOTE_AUTH_TIMEOUT", "REMOTE_PUBLIC_KEY", "REMOTE_PUBLIC_KEY_PATH", "LOCAL_PRIVATE_KEY",
    "LOCAL_PRIVATE_KEY_PATH", "LOCAL_PRIVATE_KEY_PASSWORD",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No remote-auth settings in the environment, cwd without a .env."""
    for name in ENV_VARS:
        # setenv first so teardown also removes values load_dotenv adds
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
