"""
Remote authenticator.

Authenticates a username and password against a remote identity server:

1. The request ``{username, password, identifier}`` is encoded to JSON.
2. The encoded bytes are encrypted under the remote server's public key and
   signed (over the plaintext, not the ciphertext) with our private key.
3. Both are POSTed as a form to the server's auth endpoint.
4. A ``code: 200`` answer carries an encrypted message and a signature. The
   message is decrypted with our private key and its signature checked with
   the server's public key before the username inside is looked up locally.

Every failure ends the attempt with a ``Rejected`` verdict; nothing is
raised to the caller.
"""

import logging
from typing import Callable, Optional

from remoteauth.common.protocol import (
    AuthRequest, CodecError, EncryptedEnvelope, ResponseCategory, ResponseEnvelope,
    decode_inner_message, decode_response, encode_request
)
from remoteauth.common.utils import b64d
from remoteauth.config import RemoteAuthConfig
from remoteauth.crypto import rsa, sign
from remoteauth.crypto.keys import ConfigKeyProvider, CryptoError, KeyHandle, KeyLoadError
from remoteauth.crypto.sign import SignatureEncoding
from remoteauth.transport import RequestsTransport, TransportError
from remoteauth.verdict import Authenticated, AuthVerdict, NotFound, Rejected, RejectReason

logger = logging.getLogger(__name__)


def seal(encoded_request: bytes, remote_public_key: KeyHandle, local_private_key: KeyHandle) -> EncryptedEnvelope:
    """
    Encrypt and sign an encoded request.

    Raises:
        CryptoError: If the request does not fit the remote key
    """
    ciphertext = rsa.encrypt(encoded_request, remote_public_key)
    signature = sign.sign(encoded_request, local_private_key, SignatureEncoding.BASE64)
    return EncryptedEnvelope(ciphertext=ciphertext, signature=signature)


class RemoteAuthenticator:
    """Runs the remote authentication protocol with injected collaborators."""

    def __init__(
        self,
        config: RemoteAuthConfig,
        resolver,
        transport=None,
        key_provider=None,
        capability_check: Callable[[], bool] = rsa.is_available,
    ):
        self.config = config
        self.resolver = resolver
        self.transport = transport or RequestsTransport()
        self.key_provider = key_provider or ConfigKeyProvider(config)
        self.capability_check = capability_check

    def authenticate(self, username: str, password: str):
        """
        Authenticate remotely.

        Returns:
            The local identity of the authenticated user, or None
        """
        verdict = self.attempt(username, password)
        if isinstance(verdict, Authenticated):
            return verdict.identity
        return None

    def attempt(self, username: str, password: str) -> AuthVerdict:
        """Run one attempt and return its verdict."""
        if not self.config.enabled:
            return self._reject(RejectReason.DISABLED, "Remote authentication is disabled", level=logging.DEBUG)

        if not self.capability_check():
            return self._reject(
                RejectReason.MISSING_CAPABILITY,
                "Cannot authenticate remotely, RSA-OAEP support is missing",
                level=logging.ERROR,
            )

        remote_public_key = self.key_provider.load_remote_public_key()
        if isinstance(remote_public_key, KeyLoadError):
            return self._reject(RejectReason.KEY_LOAD_FAILED, remote_public_key.message, level=logging.ERROR)

        local_private_key = self.key_provider.load_local_private_key()
        if isinstance(local_private_key, KeyLoadError):
            return self._reject(RejectReason.KEY_LOAD_FAILED, local_private_key.message, level=logging.ERROR)

        request = AuthRequest(username=username, password=password, identifier=self.config.identifier)
        try:
            envelope = seal(encode_request(request), remote_public_key, local_private_key)
        except CryptoError as e:
            return self._reject(RejectReason.SEAL_FAILED, f"Cannot seal request: {e}", level=logging.ERROR)
        logger.debug("Signature: %s", envelope.signature)

        url = self.config.endpoint_url
        try:
            response = self.transport.post(url, envelope.to_form(), self.config.timeout)
        except TransportError as e:
            return self._reject(RejectReason.TRANSPORT_ERROR, f"Error remote authenticating: {e}")

        if response.is_error:
            return self._reject(
                RejectReason.TRANSPORT_ERROR,
                f"Error remote authenticating: HTTP {response.status_code}",
            )
        logger.debug("Received body: %r", response.body)

        decoded = decode_response(response.body)
        if isinstance(decoded, CodecError):
            return self._reject(
                RejectReason.MALFORMED_RESPONSE,
                f"Error remote authenticating, {decoded.failure.value}: {decoded.message}",
            )

        category = decoded.category
        if category is ResponseCategory.SUCCESS:
            return self._accept(decoded, remote_public_key, local_private_key)
        if category is ResponseCategory.NOT_FOUND:
            logger.info("User %s not found by remote server", username)
            return NotFound()
        return self._reject(
            RejectReason.REMOTE_ERROR,
            f"Error remote authenticating. Code {decoded.code}, message: {decoded.message}",
            code=decoded.code,
            message=decoded.message,
        )

    def _accept(
        self,
        envelope: ResponseEnvelope,
        remote_public_key: KeyHandle,
        local_private_key: KeyHandle,
    ) -> AuthVerdict:
        if envelope.signature is None or envelope.message is None:
            return self._reject(RejectReason.MALFORMED_RESPONSE, "Success response lacks message or signature")

        try:
            signature = b64d(envelope.signature)
            ciphertext = b64d(envelope.message)
        except ValueError as e:
            return self._reject(RejectReason.MALFORMED_RESPONSE, f"Success response is not Base64: {e}")

        try:
            plaintext = rsa.decrypt(ciphertext, local_private_key)
        except CryptoError as e:
            return self._reject(RejectReason.MALFORMED_RESPONSE, str(e))
        logger.debug("Received decrypted body: %r", plaintext)

        # The username is untrusted until this check passes
        if not sign.verify(plaintext, signature, remote_public_key):
            return self._reject(RejectReason.INVALID_SIGNATURE, "Message is not authentic")

        message = decode_inner_message(plaintext)
        if isinstance(message, CodecError):
            return self._reject(RejectReason.MALFORMED_RESPONSE, message.message)

        identity = self.resolver.resolve_by_username(message.username)
        if identity is None:
            return self._reject(
                RejectReason.LOCAL_USER_NOT_FOUND,
                f"User {message.username} as specified by remote server not found",
            )
        logger.info("User %s authenticated by remote server", message.username)
        return Authenticated(username=message.username, identity=identity)

    @staticmethod
    def _reject(
        reason: RejectReason,
        detail: str,
        level: int = logging.WARNING,
        code: Optional[int] = None,
        message: Optional[str] = None,
    ) -> Rejected:
        logger.log(level, "Remote authentication rejected (%s): %s", reason.value, detail)
        return Rejected(reason=reason, code=code, message=message, detail=detail)
