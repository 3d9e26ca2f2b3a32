"""
Entity Contracts

Derived, human-meaningful entities reconstructed from ledger boxes:
type descriptors, decoded boxes, reputation proof aggregates and comments.

All entities are recomputed on every query. They are frozen so a published
read model can only be replaced wholesale, never patched in place.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Tuple, Union
from enum import Enum

from .ledger import Box


# =============================================================================
# TYPE DESCRIPTORS
# =============================================================================

class TypeKind(Enum):
    """
    Closed set of type semantics the engine understands.

    REGISTERED covers types published on the ledger but not used by the
    engine itself; UNRECOGNIZED covers ids with no published metadata.
    """
    PROFILE = "profile"
    DISCUSSION = "discussion"
    COMMENT = "comment"
    SPAM_FLAG = "spam_flag"
    REGISTERED = "registered"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class TypeDescriptor:
    """Metadata of a type NFT."""
    token_id: str
    type_name: str
    description: str = ""
    schema_uri: str = ""
    is_rep_proof: bool = False
    box_id: str = ""
    kind: TypeKind = TypeKind.REGISTERED

    @classmethod
    def unrecognized(cls, token_id: str) -> 'TypeDescriptor':
        return cls(
            token_id=token_id,
            type_name="Unknown Type",
            description="Metadata not found",
            kind=TypeKind.UNRECOGNIZED,
        )

    @classmethod
    def placeholder(cls) -> 'TypeDescriptor':
        """Used by an aggregate until its self-referential box is seen."""
        return cls(token_id="", type_name="N/A", description="...",
                   kind=TypeKind.UNRECOGNIZED)


# =============================================================================
# BOX CONTENT (closed variant)
# =============================================================================

class ContentKind(Enum):
    EMPTY = "empty"
    TEXT = "text"
    STRUCTURED = "structured"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class BoxContent:
    """
    Decoded R9 payload.

    Exactly one of text / data is meaningful depending on kind:
    - EMPTY:      neither
    - TEXT:       text
    - STRUCTURED: data (parsed JSON object or array), text keeps the source
    - UNREADABLE: text is the placeholder, raw keeps the undecodable hex
    """
    kind: ContentKind
    text: str = ""
    data: Any = None
    raw: str = ""

    @classmethod
    def empty(cls) -> 'BoxContent':
        return cls(kind=ContentKind.EMPTY)

    @property
    def is_empty(self) -> bool:
        return self.kind == ContentKind.EMPTY

    @property
    def value(self) -> Union[str, Any, None]:
        """The loosely-typed value UI consumers expect."""
        if self.kind == ContentKind.STRUCTURED:
            return self.data
        if self.kind == ContentKind.EMPTY:
            return None
        return self.text


# =============================================================================
# DECODED BOX / AGGREGATE
# =============================================================================

@dataclass(frozen=True)
class DecodedBox:
    box: Box
    type: TypeDescriptor
    token_id: str
    token_amount: int
    object_pointer: str
    is_locked: bool
    polarization: bool
    content: BoxContent
    owner_serialized: Optional[str] = None

    @property
    def box_id(self) -> str:
        return self.box.box_id

    @property
    def is_self_referential(self) -> bool:
        return self.object_pointer == self.token_id


@dataclass(frozen=True)
class ConflictWarning:
    """Two boxes claimed the same token-id with different owners."""
    token_id: str
    expected_owner: str
    found_owner: str
    conflicting_box_id: str


@dataclass(frozen=True)
class ReputationProofAggregate:
    """
    All boxes sharing one governing token-id: a logical mutable account
    implemented as a chain of immutable records.
    """
    token_id: str
    type: TypeDescriptor
    total_amount: int
    owner_serialized: str
    owner_address: str
    can_be_spend: bool
    current_boxes: Tuple[DecodedBox, ...] = field(default_factory=tuple)
    data: Any = None

    @property
    def number_of_boxes(self) -> int:
        return len(self.current_boxes)

    @property
    def self_box(self) -> Optional[DecodedBox]:
        for box in self.current_boxes:
            if box.is_self_referential:
                return box
        return None


# =============================================================================
# COMMENTS
# =============================================================================

@dataclass(frozen=True)
class Comment:
    """
    One node of a discussion thread.

    timestamp is milliseconds since epoch (0 when the block time could not
    be resolved). replies are ordered newest-first.
    """
    id: str
    discussion: str
    parent_id: str
    author_profile_token_id: str
    text: str
    timestamp: int
    is_spam: bool = False
    sentiment: bool = True
    replies: Tuple['Comment', ...] = field(default_factory=tuple)
    submitting: bool = False

    def with_replies(self, replies: Tuple['Comment', ...]) -> 'Comment':
        return replace(self, replies=tuple(replies))

    def walk(self):
        """Depth-first iteration over this node and its descendants."""
        yield self
        for reply in self.replies:
            yield from reply.walk()
