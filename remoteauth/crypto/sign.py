"""RSA PKCS#1 v1.5 SHA-256 sign/verify."""

from enum import Enum
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.exceptions import InvalidSignature

from remoteauth.common.utils import b64e
from remoteauth.crypto.keys import CryptoError, KeyHandle


class SignatureEncoding(Enum):
    RAW = "raw"
    BASE64 = "base64"


def sign(data: bytes, private_key: KeyHandle,
         encoding: SignatureEncoding = SignatureEncoding.RAW) -> Union[bytes, str]:
    """
    Sign data using RSA PKCS#1 v1.5 with SHA-256.

    Args:
        data: Data to sign, exactly as it is sent before encryption
        private_key: Local private key handle
        encoding: RAW returns signature bytes, BASE64 returns a string

    Returns:
        Signature bytes or Base64 string

    Raises:
        CryptoError: If the handle is not a private key
    """
    if not private_key.is_private:
        raise CryptoError("Signing requires a private key")

    signature = private_key.key.sign(
        data,
        padding.PKCS1v15(),
        hashes.SHA256()
    )
    if encoding is SignatureEncoding.BASE64:
        return b64e(signature)
    return signature


def verify(data: bytes, signature: bytes, public_key: KeyHandle) -> bool:
    """
    Verify RSA PKCS#1 v1.5 signature with SHA-256.

    Never raises: a malformed signature, a wrong key or tampered data all
    yield False.

    Args:
        data: Original data that was signed
        signature: Signature bytes to verify
        public_key: Signer's public key handle

    Returns:
        True if signature is valid, False otherwise
    """
    if not isinstance(public_key, KeyHandle) or not public_key.is_public:
        return False
    if not isinstance(signature, (bytes, bytearray)) or not isinstance(data, (bytes, bytearray)):
        return False

    try:
        public_key.key.verify(
            bytes(signature),
            bytes(data),
            padding.PKCS1v15(),
            hashes.SHA256()
        )
        return True
    except (InvalidSignature, ValueError):
        return False
