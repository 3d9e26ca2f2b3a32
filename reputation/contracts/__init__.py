"""
Contracts Package

Immutable data contracts shared by every layer.
"""

from .base import (
    ErrorCode, ReputationError, ConfigError, CodecError, AddressError,
    TransportError, ProfileError, ProfileNotFoundError, ProfileLockedError,
    InsufficientBalanceError, ProfilePendingError, SubmissionError,
)
from .ledger import (
    REGISTER_NAMES, Asset, RegisterValue, Box, SearchPredicate,
    ScanStatus, ScanResult,
)
from .entities import (
    TypeKind, TypeDescriptor, ContentKind, BoxContent, DecodedBox,
    ConflictWarning, ReputationProofAggregate, Comment,
)
from .collaborators import WalletCollaborator, SubmissionCollaborator
