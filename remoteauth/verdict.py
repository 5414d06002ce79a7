"""Outcomes of one remote authentication attempt."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class RejectReason(Enum):
    """Why an attempt did not authenticate."""
    DISABLED = "disabled"
    MISSING_CAPABILITY = "missing_capability"
    KEY_LOAD_FAILED = "key_load_failed"
    SEAL_FAILED = "seal_failed"
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_SIGNATURE = "invalid_signature"
    LOCAL_USER_NOT_FOUND = "local_user_not_found"
    REMOTE_ERROR = "remote_error"


@dataclass(frozen=True)
class Authenticated:
    username: str
    identity: Any  # Whatever the identity resolver returned


@dataclass(frozen=True)
class NotFound:
    """The remote server reports that the user does not exist there."""


@dataclass(frozen=True)
class Rejected:
    """
    Attempt failed for ``reason``.

    ``code`` and ``message`` are only set for REMOTE_ERROR. ``detail`` is a
    human-readable diagnostic and does not take part in equality.
    """
    reason: RejectReason
    code: Optional[int] = None
    message: Optional[str] = None
    detail: str = field(default="", compare=False)


AuthVerdict = Union[Authenticated, NotFound, Rejected]
