"""
Type Registry

Type NFTs describe what a reputation box means (profile, discussion root,
comment reply, spam flag, or any third-party type). Their metadata lives in
boxes guarded by the type contract:

    asset[0]  type token id
    R4        name (UTF-8)
    R5        description (UTF-8)
    R6        schema URI (UTF-8)
    R7        "is a reputation proof kind" flag
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional
import logging

from ..config import ReputationConfig
from ..contracts.entities import TypeDescriptor, TypeKind
from ..contracts.ledger import SearchPredicate
from ..explorer import codec
from ..explorer.scanner import BoxScanner

logger = logging.getLogger(__name__)


def well_known_kinds(config: ReputationConfig) -> Dict[str, TypeKind]:
    return {
        config.profile_type_id: TypeKind.PROFILE,
        config.discussion_type_id: TypeKind.DISCUSSION,
        config.comment_type_id: TypeKind.COMMENT,
        config.spam_flag_type_id: TypeKind.SPAM_FLAG,
    }


_BUILTIN_NAMES = {
    TypeKind.PROFILE: "Profile",
    TypeKind.DISCUSSION: "Discussion",
    TypeKind.COMMENT: "Comment",
    TypeKind.SPAM_FLAG: "Spam Flag",
}


@dataclass
class TypeRegistry:
    """
    Lookup of TypeDescriptors by token id.

    Ids missing from the ledger still resolve: well-known ids get a built-in
    descriptor, anything else an UNRECOGNIZED one.
    """

    _types: Dict[str, TypeDescriptor] = field(default_factory=dict)
    _kinds: Dict[str, TypeKind] = field(default_factory=dict)

    @classmethod
    def empty(cls, config: ReputationConfig) -> 'TypeRegistry':
        return cls(_types={}, _kinds=well_known_kinds(config))

    def get(self, token_id: str) -> Optional[TypeDescriptor]:
        return self._types.get(token_id)

    def resolve(self, token_id: str) -> TypeDescriptor:
        descriptor = self._types.get(token_id)
        if descriptor is not None:
            return descriptor

        kind = self._kinds.get(token_id)
        if kind is not None:
            return TypeDescriptor(
                token_id=token_id,
                type_name=_BUILTIN_NAMES[kind],
                description="...",
                is_rep_proof=True,
                kind=kind,
            )
        return TypeDescriptor.unrecognized(token_id)

    def kind_of(self, token_id: str) -> TypeKind:
        return self.resolve(token_id).kind

    def __iter__(self) -> Iterator[TypeDescriptor]:
        yield from self._types.values()

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._types


async def fetch_types(scanner: BoxScanner, config: ReputationConfig) -> TypeRegistry:
    """
    Scan the type contract and build a registry.

    A failed scan yields a registry holding whatever was collected.
    """
    kinds = well_known_kinds(config)
    result = await scanner.scan(SearchPredicate.build(config.type_template_hash))

    types: Dict[str, TypeDescriptor] = {}
    for box in result.boxes:
        token_id = box.first_token_id
        if token_id is None:
            continue
        types[token_id] = TypeDescriptor(
            token_id=token_id,
            box_id=box.box_id,
            type_name=codec.read_text(box, 'R4'),
            description=codec.read_text(box, 'R5'),
            schema_uri=codec.read_text(box, 'R6'),
            is_rep_proof=codec.read_bool(box, 'R7') is True,
            kind=kinds.get(token_id, TypeKind.REGISTERED),
        )

    if not result.is_complete:
        logger.warning(
            "Type scan incomplete (%s); %d types loaded", result.status.value, len(types)
        )
    else:
        logger.info("Loaded %d type NFTs", len(types))

    return TypeRegistry(_types=types, _kinds=kinds)
