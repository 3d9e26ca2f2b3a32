"""
Profile Resolver

Locates the caller's own profile (a reputation proof of the well-known
profile type whose R7 is the caller's commitment) and guards its use as a
transaction input.

PRECONDITIONS FOR SPENDING:
===========================
- the primary profile box is not locked
- it carries at least one token

Violations raise a ProfileError and block the caller's mutation.
"""

from __future__ import annotations
from typing import Any, Optional
import logging

from ..config import ReputationConfig
from ..contracts.base import (
    AddressError, InsufficientBalanceError, ProfileLockedError,
    ProfileNotFoundError, ProfilePendingError, SubmissionError, TransportError
)
from ..contracts.collaborators import SubmissionCollaborator, WalletCollaborator
from ..contracts.entities import DecodedBox, ReputationProofAggregate
from ..contracts.ledger import SearchPredicate
from ..explorer import codec
from ..explorer.address import ownership_commitment
from ..explorer.scanner import BoxScanner
from .decoder import decode_box
from .reconciler import render_owner
from .types import TypeRegistry

logger = logging.getLogger(__name__)

INITIAL_PROFILE_CONTENT: Any = {}


class ProfileRepository:
    """
    Holds the last resolved profile.

    Last write wins: set() replaces the whole value, clear() drops it.
    """

    def __init__(self):
        self._profile: Optional[ReputationProofAggregate] = None

    def get(self) -> Optional[ReputationProofAggregate]:
        return self._profile

    def set(self, profile: ReputationProofAggregate) -> None:
        self._profile = profile

    def clear(self) -> None:
        self._profile = None


async def caller_commitment(wallet: Optional[WalletCollaborator]) -> Optional[str]:
    """Commitment of the wallet's change address, None when unavailable."""
    if wallet is None:
        return None
    address = await wallet.get_change_address()
    if not address:
        logger.warning("Wallet returned no change address")
        return None
    try:
        return ownership_commitment(address)
    except AddressError as e:
        logger.error("Cannot derive ownership commitment: %s", e.message)
        return None


class ProfileResolver:

    def __init__(
        self,
        scanner: BoxScanner,
        registry: TypeRegistry,
        config: ReputationConfig,
        repository: Optional[ProfileRepository] = None,
        submitter: Optional[SubmissionCollaborator] = None
    ):
        self._scanner = scanner
        self._registry = registry
        self._config = config
        self._repository = repository or ProfileRepository()
        self._submitter = submitter

    @property
    def repository(self) -> ProfileRepository:
        return self._repository

    def use_registry(self, registry: TypeRegistry) -> None:
        self._registry = registry

    def profile_predicate(self, commitment: str) -> SearchPredicate:
        form = self._config.filter_form
        return SearchPredicate.build(
            self._config.template_hash,
            registers={
                'R4': codec.filter_bytes(self._config.profile_type_id, form),
                'R7': codec.to_filter(commitment, form),
            },
        )

    async def resolve(self, commitment: Optional[str]) -> Optional[ReputationProofAggregate]:
        """
        Find the caller's profile.

        The primary box is the self-referential one with the highest creation
        height (first discovered wins ties). Publishes the result to the
        repository; any absence clears it.
        """
        if not commitment:
            self._repository.clear()
            return None

        result = await self._scanner.scan(self.profile_predicate(commitment))

        decoded = [
            d for d in (decode_box(box, self._registry) for box in result.boxes)
            if d is not None
        ]

        primary: Optional[DecodedBox] = None
        for candidate in decoded:
            if not candidate.is_self_referential:
                continue
            if primary is None or candidate.box.creation_height > primary.box.creation_height:
                primary = candidate

        if primary is None:
            logger.info("No profile box found for commitment %s", commitment)
            self._repository.clear()
            return None

        try:
            total = await self._scanner.client.get_emission_amount(primary.token_id)
        except TransportError as e:
            logger.error("Could not resolve emission of profile %s: %s", primary.token_id, e.message)
            self._repository.clear()
            return None

        siblings = tuple(
            d for d in decoded
            if d.token_id == primary.token_id and d.box_id != primary.box_id
        )

        profile = ReputationProofAggregate(
            token_id=primary.token_id,
            type=primary.type,
            total_amount=total,
            owner_serialized=commitment,
            owner_address=render_owner(commitment, self._config.address_prefix),
            can_be_spend=True,
            current_boxes=(primary,) + siblings,
            data=primary.content.value,
        )

        logger.info(
            "Profile found: %s (%d boxes)", profile.token_id, profile.number_of_boxes
        )
        self._repository.set(profile)
        return profile

    async def resolve_for_wallet(
        self,
        wallet: Optional[WalletCollaborator]
    ) -> Optional[ReputationProofAggregate]:
        return await self.resolve(await caller_commitment(wallet))

    def require_spendable_box(
        self,
        profile: Optional[ReputationProofAggregate]
    ) -> DecodedBox:
        """The primary box, if it may be used as a transaction input."""
        if profile is None or not profile.current_boxes:
            raise ProfileNotFoundError("No reputation profile is available for this wallet")

        box = profile.self_box or profile.current_boxes[0]
        if box.is_locked:
            raise ProfileLockedError(
                f"Profile box {box.box_id} is locked and cannot be spent"
            )
        if box.token_amount < 1:
            raise InsufficientBalanceError(
                f"Profile box {box.box_id} holds {box.token_amount} tokens; at least 1 is required"
            )
        return box

    async def ensure_profile(self, commitment: Optional[str]) -> ReputationProofAggregate:
        """
        Resolve the caller's profile or submit its creation.

        When none exists, exactly one creation is submitted and
        ProfilePendingError is raised. Confirmation is never awaited.
        """
        profile = await self.resolve(commitment)
        if profile is not None:
            return profile

        if self._submitter is None:
            raise ProfileNotFoundError("No reputation profile found and no submitter configured")

        supply = self._config.profile_total_supply
        try:
            transaction_id = await self._submitter.submit(
                amount=supply,
                total_supply=supply,
                type_id=self._config.profile_type_id,
                target_pointer=None,
                polarization=True,
                content=INITIAL_PROFILE_CONTENT,
                locked=False,
                input_box=None,
            )
        except Exception as e:
            raise SubmissionError(f"Profile creation could not be submitted: {e}") from e

        logger.info("Profile creation submitted in transaction %s", transaction_id)
        raise ProfilePendingError(
            "A new profile was submitted and is waiting for confirmation; "
            "retry once it is confirmed",
            transaction_id=transaction_id,
        )
