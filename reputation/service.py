"""
Reputation Service

Application facade used by the UI layer and the read API.

DESIGN:
=======
1. Read paths (types, proofs, threads, profile) run a full query and publish
   the result to the ReadModelStore, replacing the previous value wholesale
2. Write paths (post, reply, flag) resolve the caller's profile, check that
   it may be spent, hand the mutation to the submission collaborator and
   insert an optimistic "submitting" entry into the published thread
3. A submission only means "accepted for broadcast"; nothing re-queries
   automatically
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging

import httpx

from .config import ReputationConfig, load_config
from .contracts.base import ProfileNotFoundError, SubmissionError
from .contracts.collaborators import SubmissionCollaborator, WalletCollaborator
from .contracts.entities import Comment, ReputationProofAggregate
from .engine.profile import ProfileRepository, ProfileResolver, caller_commitment
from .engine.reconciler import EntityReconciler, ReconciliationResult
from .engine.threads import ThreadAssembler, ThreadSnapshot, sort_newest_first
from .engine.types import TypeRegistry, fetch_types
from .explorer.client import ExplorerClient
from .explorer.scanner import BoxScanner

logger = logging.getLogger(__name__)

SPAM_PLACEHOLDER_TEXT = "[comment flagged as spam]"


# =============================================================================
# READ MODELS
# =============================================================================

def _insert_reply(
    comments: Tuple[Comment, ...],
    parent_id: str,
    reply: Comment
) -> Tuple[Tuple[Comment, ...], bool]:
    updated = []
    inserted = False
    for comment in comments:
        if not inserted and comment.id == parent_id:
            comment = comment.with_replies((reply,) + comment.replies)
            inserted = True
        elif not inserted and comment.replies:
            replies, inserted = _insert_reply(comment.replies, parent_id, reply)
            if inserted:
                comment = comment.with_replies(replies)
        updated.append(comment)
    return tuple(updated), inserted


def _flag_comment(
    comments: Tuple[Comment, ...],
    target_id: str
) -> Tuple[Tuple[Comment, ...], bool]:
    updated = []
    flagged = False
    for comment in comments:
        if comment.id == target_id:
            comment = replace(comment, is_spam=True, text=SPAM_PLACEHOLDER_TEXT)
            flagged = True
        elif comment.replies:
            replies, found = _flag_comment(comment.replies, target_id)
            if found:
                comment = comment.with_replies(replies)
                flagged = True
        updated.append(comment)
    return tuple(updated), flagged


@dataclass
class ReadModelStore:
    """
    Published read models.

    Every publish_* call replaces the previous value for its key; nothing
    is merged. Optimistic updates build new snapshots as well.
    """
    threads: Dict[str, ThreadSnapshot] = field(default_factory=dict)
    proofs: Optional[ReconciliationResult] = None
    types: Optional[TypeRegistry] = None

    def publish_thread(self, snapshot: ThreadSnapshot) -> None:
        self.threads[snapshot.discussion_id] = snapshot

    def publish_proofs(self, result: ReconciliationResult) -> None:
        self.proofs = result

    def publish_types(self, registry: TypeRegistry) -> None:
        self.types = registry

    def get_thread(self, discussion_id: str) -> Optional[ThreadSnapshot]:
        return self.threads.get(discussion_id)

    def discussion_of(self, comment_id: str) -> Optional[str]:
        for discussion_id, snapshot in self.threads.items():
            if snapshot.find(comment_id) is not None:
                return discussion_id
        return None

    def add_pending_comment(self, comment: Comment) -> None:
        """Prepend a pending root comment (or reply) to its published thread."""
        snapshot = self.threads.get(comment.discussion) or ThreadSnapshot(
            discussion_id=comment.discussion
        )

        if comment.parent_id == comment.discussion:
            comments = sort_newest_first(list(snapshot.comments) + [comment])
        else:
            comments, inserted = _insert_reply(snapshot.comments, comment.parent_id, comment)
            if not inserted:
                return

        self.threads[comment.discussion] = replace(
            snapshot, comments=comments, node_count=snapshot.node_count + 1
        )

    def mark_spam(self, comment_id: str) -> bool:
        discussion_id = self.discussion_of(comment_id)
        if discussion_id is None:
            return False
        snapshot = self.threads[discussion_id]
        comments, flagged = _flag_comment(snapshot.comments, comment_id)
        if flagged:
            self.threads[discussion_id] = replace(snapshot, comments=comments)
        return flagged


# =============================================================================
# SERVICE
# =============================================================================

class ReputationService:
    """
    Coordinates scanning, reconstruction, publication and submissions.

    The explorer client is owned by the service unless one is passed in.
    """

    def __init__(
        self,
        config: ReputationConfig,
        client: Optional[ExplorerClient] = None,
        wallet: Optional[WalletCollaborator] = None,
        submitter: Optional[SubmissionCollaborator] = None,
        store: Optional[ReadModelStore] = None,
        repository: Optional[ProfileRepository] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._config = config
        self._owns_client = client is None
        self._client = client or ExplorerClient(config, transport=transport)
        self._wallet = wallet
        self._submitter = submitter
        self._store = store or ReadModelStore()

        self._scanner = BoxScanner(self._client, config.page_size)
        self._registry = TypeRegistry.empty(config)
        self._reconciler = EntityReconciler(self._scanner, self._registry, config)
        self._threads = ThreadAssembler(self._scanner, config)
        self._profiles = ProfileResolver(
            self._scanner, self._registry, config,
            repository=repository, submitter=submitter,
        )

    @classmethod
    def from_config(
        cls,
        config_path: Optional[Path] = None,
        **kwargs
    ) -> 'ReputationService':
        return cls(load_config(config_path).validate(), **kwargs)

    @property
    def config(self) -> ReputationConfig:
        return self._config

    @property
    def store(self) -> ReadModelStore:
        return self._store

    @property
    def profiles(self) -> ProfileResolver:
        return self._profiles

    @property
    def threads(self) -> ThreadAssembler:
        return self._threads

    @property
    def reconciler(self) -> EntityReconciler:
        return self._reconciler

    async def __aenter__(self) -> 'ReputationService':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # READ PATHS
    # =========================================================================

    async def load_types(self) -> TypeRegistry:
        registry = await fetch_types(self._scanner, self._config)
        self._registry = registry
        self._reconciler.use_registry(registry)
        self._profiles.use_registry(registry)
        self._store.publish_types(registry)
        return registry

    async def load_proofs(
        self,
        search: Optional[str] = None,
        all_owners: bool = False
    ) -> ReconciliationResult:
        """
        List reputation proofs.

        Without a connected wallet every owner is listed regardless of
        all_owners.
        """
        await self.load_types()
        commitment = await caller_commitment(self._wallet)
        if commitment is None:
            all_owners = True

        result = await self._reconciler.search_proofs(
            search=search, caller_commitment=commitment, all_owners=all_owners
        )
        self._store.publish_proofs(result)
        return result

    async def load_threads(self, discussion_id: str) -> ThreadSnapshot:
        snapshot = await self._threads.assemble(discussion_id)
        self._store.publish_thread(snapshot)
        logger.info(
            "Loaded discussion %s: %d comments", discussion_id, snapshot.node_count
        )
        return snapshot

    async def load_profile(self) -> Optional[ReputationProofAggregate]:
        return await self._profiles.resolve_for_wallet(self._wallet)

    # =========================================================================
    # WRITE PATHS
    # =========================================================================

    async def post_comment(self, discussion_id: str, text: str) -> Comment:
        return await self._submit_comment(
            type_id=self._config.discussion_type_id,
            discussion_id=discussion_id,
            parent_id=discussion_id,
            text=text,
        )

    async def reply_to_comment(
        self,
        parent_id: str,
        text: str,
        discussion_id: Optional[str] = None
    ) -> Comment:
        discussion = discussion_id or self._store.discussion_of(parent_id) or parent_id
        return await self._submit_comment(
            type_id=self._config.comment_type_id,
            discussion_id=discussion,
            parent_id=parent_id,
            text=text,
        )

    async def flag_spam(self, target_id: str, reason: Optional[str] = None) -> str:
        """Submit a spam flag; the published thread is marked optimistically."""
        transaction_id = await self._submit(
            type_id=self._config.spam_flag_type_id,
            target=target_id,
            content=reason,
        )
        self._store.mark_spam(target_id)
        return transaction_id

    async def _submit_comment(
        self,
        type_id: str,
        discussion_id: str,
        parent_id: str,
        text: str
    ) -> Comment:
        if not text or not text.strip():
            raise ValueError("Comment text must not be empty")

        transaction_id = await self._submit(type_id=type_id, target=parent_id, content=text)
        profile = self._profiles.repository.get()

        pending = Comment(
            id=transaction_id,
            discussion=discussion_id,
            parent_id=parent_id,
            author_profile_token_id=profile.token_id if profile else "",
            text=text,
            timestamp=int(datetime.now(timezone.utc).timestamp() * 1000),
            submitting=True,
        )
        self._store.add_pending_comment(pending)
        return pending

    async def _submit(self, type_id: str, target: str, content: Any) -> str:
        if self._submitter is None:
            raise SubmissionError("No submission collaborator configured")

        commitment = await caller_commitment(self._wallet)
        if commitment is None:
            raise ProfileNotFoundError("Connect a wallet before submitting")

        profile = await self._profiles.ensure_profile(commitment)
        input_box = self._profiles.require_spendable_box(profile)

        try:
            transaction_id = await self._submitter.submit(
                amount=1,
                total_supply=profile.total_amount,
                type_id=type_id,
                target_pointer=target,
                polarization=True,
                content=content,
                locked=True,
                input_box=input_box,
            )
        except Exception as e:
            raise SubmissionError(f"Submission failed: {e}") from e

        logger.info("Submitted %s for %s in transaction %s", type_id, target, transaction_id)
        return transaction_id

