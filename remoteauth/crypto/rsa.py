"""RSA-OAEP (SHA-256) encrypt/decrypt helpers."""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.backends import default_backend

from remoteauth.crypto.keys import CryptoError, KeyHandle


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None
    )


def max_payload_size(key: KeyHandle) -> int:
    """
    Largest plaintext (in bytes) a single OAEP block can carry for this key.

    k - 2*hLen - 2, with hLen = 32 for SHA-256.
    """
    key_bytes = (key.key_size + 7) // 8
    return key_bytes - 2 * hashes.SHA256.digest_size - 2


def is_available() -> bool:
    """Return True if the crypto backend can do RSA-OAEP with SHA-256."""
    try:
        return bool(default_backend().rsa_encryption_supported(_oaep()))
    except (AttributeError, UnsupportedAlgorithm):
        return False


def encrypt(plaintext: bytes, public_key: KeyHandle) -> bytes:
    """
    Encrypt plaintext for the holder of the matching private key.

    Args:
        plaintext: Data to encrypt
        public_key: Recipient's public key handle

    Returns:
        Ciphertext bytes

    Raises:
        CryptoError: If the handle is not a public key or the plaintext
            does not fit in one OAEP block
    """
    if not public_key.is_public:
        raise CryptoError("Encryption requires the recipient's public key")

    limit = max_payload_size(public_key)
    if len(plaintext) > limit:
        raise CryptoError(
            f"Plaintext is {len(plaintext)} bytes, a {public_key.key_size}-bit key carries at most {limit}"
        )

    return public_key.key.encrypt(plaintext, _oaep())


def decrypt(ciphertext: bytes, private_key: KeyHandle) -> bytes:
    """
    Decrypt ciphertext with our own private key.

    Raises:
        CryptoError: On malformed ciphertext, key mismatch or a non-private handle
    """
    if not private_key.is_private:
        raise CryptoError("Decryption requires a private key")

    try:
        return private_key.key.decrypt(ciphertext, _oaep())
    except ValueError as e:
        raise CryptoError(f"Decryption failed: {e}") from e
