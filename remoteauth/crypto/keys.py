"""Role-tagged RSA key handles and PEM/X.509 key material loading."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.hazmat.backends import default_backend


class CryptoError(Exception):
    """Raised when an RSA operation cannot be performed."""


class KeyRole(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class KeyHandle:
    """
    Immutable wrapper around a parsed RSA key.

    The role is checked against the wrapped key object when the handle is
    built, so a private key can never be passed where a public key is
    expected (and vice versa).
    """
    role: KeyRole
    key: object

    def __post_init__(self):
        expected = RSAPublicKey if self.role is KeyRole.PUBLIC else RSAPrivateKey
        if not isinstance(self.key, expected):
            raise ValueError(
                f"{self.role.value} key handle requires an {expected.__name__}, "
                f"got {type(self.key).__name__}"
            )

    @classmethod
    def public(cls, key) -> "KeyHandle":
        return cls(KeyRole.PUBLIC, key)

    @classmethod
    def private(cls, key) -> "KeyHandle":
        return cls(KeyRole.PRIVATE, key)

    @property
    def is_public(self) -> bool:
        return self.role is KeyRole.PUBLIC

    @property
    def is_private(self) -> bool:
        return self.role is KeyRole.PRIVATE

    @property
    def key_size(self) -> int:
        """Modulus size in bits."""
        return self.key.key_size

    def public_handle(self) -> "KeyHandle":
        """Return the public half of this key pair."""
        if self.is_public:
            return self
        return KeyHandle.public(self.key.public_key())


class KeyLoadFailure(Enum):
    MISSING = "missing"
    INVALID = "invalid"


@dataclass(frozen=True)
class KeyLoadError:
    """Why a key could not be loaded. Returned, not raised."""
    role: KeyRole
    failure: KeyLoadFailure
    message: str


def load_certificate(pem_data: bytes):
    """Parse a PEM certificate published by the remote server."""
    return x509.load_pem_x509_certificate(pem_data, default_backend())


def load_public_key(pem_data: bytes) -> KeyHandle:
    """
    Load an RSA public key from PEM bytes.

    Accepts a SubjectPublicKeyInfo ``PUBLIC KEY`` block, a PKCS#1
    ``RSA PUBLIC KEY`` block or an X.509 certificate, in which case the
    certificate's subject key is used.

    Args:
        pem_data: PEM-encoded key or certificate bytes

    Returns:
        Public key handle

    Raises:
        ValueError: If the data cannot be parsed or is not an RSA key
    """
    if b"-----BEGIN CERTIFICATE-----" in pem_data:
        key = load_certificate(pem_data).public_key()
    else:
        key = serialization.load_pem_public_key(pem_data, backend=default_backend())
    return KeyHandle.public(key)


def load_private_key(pem_data: bytes, password: Optional[bytes] = None) -> KeyHandle:
    """
    Parse this installation's signing/decryption key.

    Args:
        pem_data: PKCS#1 or PKCS#8 PEM block
        password: Passphrase when the PEM block is encrypted

    Returns:
        Private key handle

    Raises:
        ValueError: Unparsable data, wrong passphrase or a non-RSA key
        TypeError: Passphrase missing for an encrypted key (or given for a plain one)
    """
    key = serialization.load_pem_private_key(
        pem_data,
        password=password,
        backend=default_backend()
    )
    return KeyHandle.private(key)


def private_key_to_pem(handle: KeyHandle) -> bytes:
    """Serialize a private key handle to unencrypted PKCS#8 PEM."""
    return handle.key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def public_key_to_pem(handle: KeyHandle) -> bytes:
    """Serialize the public half of a handle to SubjectPublicKeyInfo PEM."""
    return handle.public_handle().key.public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _read_material(inline: Optional[str], path: Optional[Path]) -> bytes:
    if inline:
        return inline.encode("utf-8")
    if path:
        with open(path, "rb") as f:
            return f.read()
    return b""


class ConfigKeyProvider:
    """
    Loads the remote public key and the local private key from configuration.

    Key material is read fresh on every call, either inline PEM text or a
    path to a PEM file. Failures are returned as ``KeyLoadError`` values.
    """

    def __init__(self, config):
        self.config = config

    def load_remote_public_key(self) -> Union[KeyHandle, KeyLoadError]:
        return self._load(
            KeyRole.PUBLIC,
            self.config.remote_public_key,
            self.config.remote_public_key_path,
            load_public_key,
        )

    def load_local_private_key(self) -> Union[KeyHandle, KeyLoadError]:
        password = self.config.local_private_key_password
        password_bytes = password.encode("utf-8") if password else None
        return self._load(
            KeyRole.PRIVATE,
            self.config.local_private_key,
            self.config.local_private_key_path,
            lambda data: load_private_key(data, password_bytes),
        )

    def _load(
        self,
        role: KeyRole,
        inline: Optional[str],
        path: Optional[Path],
        parser: Callable[[bytes], KeyHandle],
    ) -> Union[KeyHandle, KeyLoadError]:
        label = "remote public" if role is KeyRole.PUBLIC else "local private"
        try:
            pem_data = _read_material(inline, path)
        except OSError as e:
            return KeyLoadError(role, KeyLoadFailure.INVALID, f"cannot read {label} key file {path}: {e}")

        if not pem_data.strip():
            return KeyLoadError(role, KeyLoadFailure.MISSING, f"{label.capitalize()} key not set")

        try:
            return parser(pem_data)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            return KeyLoadError(role, KeyLoadFailure.INVALID, f"Problems loading the {label} key: {e}")
