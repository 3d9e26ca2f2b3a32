"""
Entity Reconciler

Groups boxes that share a governing token id into ReputationProofAggregates.

RULES:
======
1. A box's governing identity is the token in its first asset slot
2. Every box of one token must carry the same R7 owner commitment; a single
   disagreement discards the whole token (correctness over completeness) and
   the token is not re-created by boxes seen later
3. Total supply is looked up once per token; a token whose supply cannot be
   resolved is left out
4. The self-referential box (object pointer == token id) supplies the
   aggregate's type and canonical data
5. can_be_spend iff the caller's commitment equals the recorded one
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from ..config import ReputationConfig
from ..contracts.base import CodecError, TransportError
from ..contracts.entities import (
    ConflictWarning, DecodedBox, ReputationProofAggregate, TypeDescriptor
)
from ..contracts.ledger import Box, ScanStatus, SearchPredicate
from ..explorer import codec
from ..explorer.address import commitment_to_address
from ..explorer.scanner import BoxScanner
from .decoder import decode_box
from .types import TypeRegistry

logger = logging.getLogger(__name__)

REQUIRED_REGISTERS = ('R4', 'R6', 'R7')


@dataclass(frozen=True)
class ReconciliationResult:
    """Aggregates plus everything that was left out and why."""
    proofs: Tuple[ReputationProofAggregate, ...] = field(default_factory=tuple)
    conflicts: Tuple[ConflictWarning, ...] = field(default_factory=tuple)
    skipped_box_ids: Tuple[str, ...] = field(default_factory=tuple)
    unresolved_token_ids: Tuple[str, ...] = field(default_factory=tuple)
    scan_status: ScanStatus = ScanStatus.COMPLETE

    def get(self, token_id: str) -> Optional[ReputationProofAggregate]:
        for proof in self.proofs:
            if proof.token_id == token_id:
                return proof
        return None

    def by_token(self) -> Dict[str, ReputationProofAggregate]:
        return {proof.token_id: proof for proof in self.proofs}

    def __len__(self) -> int:
        return len(self.proofs)


def render_owner(owner_serialized: str, network_prefix: int = 0x00) -> str:
    """Address when the commitment decodes to one, rendered hex otherwise."""
    address = commitment_to_address(owner_serialized, network_prefix)
    if address is not None:
        return address
    try:
        return codec.serialized_to_rendered(owner_serialized)
    except CodecError:
        return owner_serialized


class EntityReconciler:
    """
    Builds proof aggregates from raw boxes.

    Each reconcile() call is independent and resolves the supply of every
    surviving token exactly once.
    """

    def __init__(
        self,
        scanner: BoxScanner,
        registry: TypeRegistry,
        config: ReputationConfig
    ):
        self._scanner = scanner
        self._registry = registry
        self._config = config

    @property
    def registry(self) -> TypeRegistry:
        return self._registry

    def use_registry(self, registry: TypeRegistry) -> None:
        self._registry = registry

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def reconcile(
        self,
        boxes: Iterable[Box],
        caller_commitment: Optional[str] = None
    ) -> ReconciliationResult:
        groups: Dict[str, List[Box]] = {}
        owners: Dict[str, str] = {}
        conflicted: Set[str] = set()
        conflicts: List[ConflictWarning] = []
        skipped: List[str] = []
        seen: Set[str] = set()

        for box in boxes:
            if box.box_id in seen:
                continue
            seen.add(box.box_id)

            if not self._is_structurally_valid(box):
                skipped.append(box.box_id)
                continue

            token_id = box.first_token_id
            if token_id in conflicted:
                continue

            owner = box.serialized('R7')
            expected = owners.get(token_id)
            if expected is not None and expected != owner:
                logger.warning(
                    "Reputation proof %s has conflicting owners; discarding it "
                    "(expected %s, found %s in box %s)",
                    token_id, expected, owner, box.box_id
                )
                conflicts.append(ConflictWarning(
                    token_id=token_id,
                    expected_owner=expected,
                    found_owner=owner,
                    conflicting_box_id=box.box_id,
                ))
                conflicted.add(token_id)
                groups.pop(token_id, None)
                continue

            owners[token_id] = owner
            groups.setdefault(token_id, []).append(box)

        proofs: List[ReputationProofAggregate] = []
        unresolved: List[str] = []

        for token_id, group in groups.items():
            try:
                total = await self._scanner.client.get_emission_amount(token_id)
            except TransportError as e:
                logger.error("Could not resolve emission of token %s: %s", token_id, e.message)
                unresolved.append(token_id)
                continue

            proofs.append(self._build_aggregate(
                token_id, group, owners[token_id], total, caller_commitment
            ))

        return ReconciliationResult(
            proofs=tuple(proofs),
            conflicts=tuple(conflicts),
            skipped_box_ids=tuple(skipped),
            unresolved_token_ids=tuple(unresolved),
        )

    def _is_structurally_valid(self, box: Box) -> bool:
        if not box.assets:
            logger.debug("Box %s skipped: no assets", box.box_id)
            return False
        for name in REQUIRED_REGISTERS:
            if box.register(name) is None:
                logger.debug("Box %s skipped: missing %s", box.box_id, name)
                return False
        contract_tree = self._config.contract_ergo_tree
        if contract_tree and box.ergo_tree != contract_tree:
            logger.debug("Box %s skipped: foreign contract", box.box_id)
            return False
        return True

    def _build_aggregate(
        self,
        token_id: str,
        group: List[Box],
        owner: str,
        total_amount: int,
        caller_commitment: Optional[str]
    ) -> ReputationProofAggregate:
        decoded: List[DecodedBox] = []
        canonical: Optional[DecodedBox] = None

        for box in group:
            current = decode_box(box, self._registry)
            decoded.append(current)
            if current.is_self_referential:
                if canonical is None or current.box.creation_height > canonical.box.creation_height:
                    canonical = current

        proof_type = canonical.type if canonical else TypeDescriptor.placeholder()
        data = canonical.content.value if canonical else None

        return ReputationProofAggregate(
            token_id=token_id,
            type=proof_type,
            total_amount=total_amount,
            owner_serialized=owner,
            owner_address=render_owner(owner, self._config.address_prefix),
            can_be_spend=caller_commitment is not None and owner == caller_commitment,
            current_boxes=tuple(decoded),
            data=data,
        )

    # =========================================================================
    # SEARCH
    # =========================================================================

    def build_search_predicates(
        self,
        search: Optional[str] = None,
        caller_commitment: Optional[str] = None,
        all_owners: bool = True
    ) -> List[SearchPredicate]:
        """
        Predicates for a proof listing.

        With a search term the listing matches it as an asset id, as R5 text
        and - when it looks like a token id - as the R4 type id.
        Unless all_owners is set, each predicate is narrowed to the caller.
        """
        form = self._config.filter_form
        base = SearchPredicate.build(self._config.template_hash)

        if search:
            predicates = [
                SearchPredicate.build(self._config.template_hash, assets=(search,)),
                base.with_registers({'R5': codec.filter_text(search, form)}),
            ]
            if codec.is_hex_id(search):
                predicates.append(base.with_registers({'R4': codec.filter_bytes(search, form)}))
        else:
            predicates = [base]

        if caller_commitment and not all_owners:
            owner_filter = {'R7': codec.to_filter(caller_commitment, form)}
            predicates = [p.with_registers(owner_filter) for p in predicates]

        return predicates

    async def search_proofs(
        self,
        search: Optional[str] = None,
        caller_commitment: Optional[str] = None,
        all_owners: bool = True
    ) -> ReconciliationResult:
        """Scan every search predicate, merge the boxes and reconcile once."""
        boxes: List[Box] = []
        status = ScanStatus.COMPLETE

        for predicate in self.build_search_predicates(search, caller_commitment, all_owners):
            result = await self._scanner.scan(predicate)
            boxes.extend(result.boxes)
            if not result.is_complete:
                status = ScanStatus.PARTIAL

        reconciled = await self.reconcile(boxes, caller_commitment)
        logger.info(
            "Reconciled %d proofs (%d conflicts) from %d boxes",
            len(reconciled.proofs), len(reconciled.conflicts), len(boxes)
        )
        if status == ScanStatus.COMPLETE:
            return reconciled
        return replace(reconciled, scan_status=status)
