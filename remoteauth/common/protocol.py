"""Pydantic models and codec for the remote authentication wire format."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from remoteauth.common.utils import b64e

# Name of the scheme announced in the "method" form field
METHOD_NAME = "asymmetric-rsa"


class AuthRequest(BaseModel):
    """Credential request (sent encrypted and signed)."""
    model_config = ConfigDict(frozen=True)

    username: str
    password: str
    identifier: str  # Identifies this installation to the remote server


class EncryptedEnvelope(BaseModel):
    """Sealed request: ciphertext of the encoded request plus its signature."""
    model_config = ConfigDict(frozen=True)

    ciphertext: bytes  # RSA-OAEP ciphertext of the encoded request
    signature: str  # Base64 RSA signature over the plaintext encoded request

    def to_form(self, method: str = METHOD_NAME) -> Dict[str, str]:
        """Form fields for the POST body."""
        return {
            "method": method,
            "message": b64e(self.ciphertext),
            "signature": self.signature,
        }


class ResponseCategory(Enum):
    """Closed set of response code categories the protocol dispatches on."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    OTHER = "other"


class ResponseEnvelope(BaseModel):
    """Server response body."""
    code: int
    message: Optional[str] = None  # Base64 ciphertext on 200, error text otherwise
    signature: Optional[str] = None  # Base64 RSA signature, only on 200

    @field_validator("code", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        # JSON true/false would otherwise coerce to 1/0
        if isinstance(value, bool):
            raise ValueError("code must be an integer, not a boolean")
        return value

    @field_validator("message", "signature", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)

    @property
    def category(self) -> ResponseCategory:
        if self.code == 200:
            return ResponseCategory.SUCCESS
        if self.code == 404:
            return ResponseCategory.NOT_FOUND
        return ResponseCategory.OTHER


class DecryptedMessage(BaseModel):
    """Inner message of a successful response, once decrypted."""
    username: str = Field(min_length=1)


class CodecFailure(Enum):
    MALFORMED_BODY = "malformed_body"
    NOT_AN_OBJECT = "not_an_object"
    INVALID_FIELD = "invalid_field"


@dataclass(frozen=True)
class CodecError:
    """Why a payload could not be decoded. Returned, not raised."""
    failure: CodecFailure
    message: str


def encode_request(request: AuthRequest) -> bytes:
    """
    Serialize a request to compact UTF-8 JSON.

    The returned bytes are both encrypted and signed, so they must not be
    re-serialized between the two operations.
    """
    return request.model_dump_json().encode("utf-8")


def _load_object(raw: Union[bytes, str]) -> Union[Dict[str, Any], CodecError]:
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        data = json.loads(text)
    except ValueError as e:
        return CodecError(CodecFailure.MALFORMED_BODY, f"body is not JSON: {e}")
    except RecursionError:
        return CodecError(CodecFailure.MALFORMED_BODY, "body is nested too deeply")

    if not isinstance(data, dict):
        return CodecError(CodecFailure.NOT_AN_OBJECT, f"body is a JSON {type(data).__name__}, not an object")
    return data


def decode_response(raw_body: Union[bytes, str]) -> Union[ResponseEnvelope, CodecError]:
    """
    Parse a server response body.

    Only ``code`` is required; ``message`` and ``signature`` become None when
    absent.

    Args:
        raw_body: HTTP response body

    Returns:
        ResponseEnvelope, or CodecError if the body is not a JSON object with
        an integer code
    """
    data = _load_object(raw_body)
    if isinstance(data, CodecError):
        return data

    try:
        return ResponseEnvelope.model_validate(data)
    except ValidationError as e:
        return CodecError(CodecFailure.MALFORMED_BODY, f"response has no usable code: {e.errors()[0]['msg']}")


def decode_inner_message(plaintext: bytes) -> Union[DecryptedMessage, CodecError]:
    """Parse the decrypted inner message of a successful response."""
    data = _load_object(plaintext)
    if isinstance(data, CodecError):
        return data

    try:
        return DecryptedMessage.model_validate(data)
    except ValidationError as e:
        return CodecError(CodecFailure.INVALID_FIELD, f"decrypted message has no valid username: {e.errors()[0]['msg']}")
