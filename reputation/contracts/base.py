"""
Base Contracts and Error Types

Foundational error states shared by every layer of the reputation engine.

ERROR POLICY:
=============
- Read paths never raise past their boundary: transport failures become
  partial results, decode failures become placeholders, identity conflicts
  become absences.
- Write paths (anything that spends a profile box or submits a transaction)
  raise a ReputationError subclass synchronously so the caller is blocked.
"""

from __future__ import annotations
from enum import Enum, auto
from typing import Optional


class ErrorCode(Enum):
    """
    Explicit error codes.
    Every raised ReputationError carries exactly one of these.
    """
    # Configuration
    INVALID_CONFIG = auto()

    # Codec / address
    MALFORMED_REGISTER = auto()
    INVALID_ADDRESS = auto()

    # Transport
    SOURCE_UNREACHABLE = auto()

    # Profile invariants
    PROFILE_NOT_FOUND = auto()
    PROFILE_LOCKED = auto()
    INSUFFICIENT_BALANCE = auto()
    PROFILE_PENDING = auto()

    # Submission
    SUBMISSION_FAILED = auto()


class ReputationError(Exception):
    """Base class for every error raised by the reputation engine."""

    code: ErrorCode = ErrorCode.INVALID_CONFIG

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ""


class ConfigError(ReputationError):
    code = ErrorCode.INVALID_CONFIG


class CodecError(ReputationError, ValueError):
    """Malformed ledger encoding handed to a strict decoder."""
    code = ErrorCode.MALFORMED_REGISTER


class AddressError(ReputationError, ValueError):
    code = ErrorCode.INVALID_ADDRESS


class TransportError(ReputationError):
    """A single remote call failed. Never escapes the read path."""
    code = ErrorCode.SOURCE_UNREACHABLE


class ProfileError(ReputationError):
    """The caller's profile cannot be used for the requested mutation."""


class ProfileNotFoundError(ProfileError):
    code = ErrorCode.PROFILE_NOT_FOUND


class ProfileLockedError(ProfileError):
    code = ErrorCode.PROFILE_LOCKED


class InsufficientBalanceError(ProfileError):
    code = ErrorCode.INSUFFICIENT_BALANCE


class ProfilePendingError(ProfileError):
    """
    A new profile was submitted for creation but is not confirmed yet.

    The operation that triggered the creation is NOT performed; the caller
    has to retry once the ledger has confirmed the transaction.
    """
    code = ErrorCode.PROFILE_PENDING

    def __init__(self, message: str, transaction_id: Optional[str] = None):
        super().__init__(message)
        self.transaction_id = transaction_id


class SubmissionError(ReputationError):
    code = ErrorCode.SUBMISSION_FAILED
