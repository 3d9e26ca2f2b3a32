"""
Thread Assembler

Builds the comment tree of a discussion from ledger boxes.

LAYOUT ON THE LEDGER:
=====================
root comment   R4 = discussion type id,  R5 = discussion id
reply          R4 = comment type id,     R5 = parent comment box id
spam flag      R4 = spam-flag type id,   R5 = flagged comment box id

ASSEMBLY:
=========
1. A breadth-first work queue holds "scan the children of X" items, starting
   with the discussion itself
2. A bounded pool of workers drains the queue; every valid box found becomes
   a node in an arena keyed by box id, indexed by parent id, and enqueues the
   scan of its own children
3. Per node: spam flags are tallied and the block timestamp is resolved
   (cached per block id for the duration of one assembly)
4. Once the queue is drained the tree is merged bottom-up from the arena and
   siblings are ordered newest-first

VALIDITY:
=========
A comment box needs a non-empty asset list, R6 locked = true and a non-empty
R9. Anything else is dropped silently.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
import asyncio
import logging

from ..config import ReputationConfig
from ..contracts.base import TransportError
from ..contracts.entities import Comment
from ..contracts.ledger import Box, ScanStatus, SearchPredicate
from ..explorer import codec
from ..explorer.scanner import BoxScanner

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    """Arena entry. Mutable only while its own worker fills it in."""
    box_id: str
    parent_id: str
    depth: int
    author: str
    text: str
    sentiment: bool
    block_id: Optional[str]
    timestamp: int = 0
    spam_count: int = 0


@dataclass(frozen=True)
class _WorkItem:
    parent_id: str
    depth: int


@dataclass(frozen=True)
class ThreadSnapshot:
    """A fully assembled discussion."""
    discussion_id: str
    comments: Tuple[Comment, ...] = field(default_factory=tuple)
    node_count: int = 0
    scan_status: ScanStatus = ScanStatus.COMPLETE

    def find(self, comment_id: str) -> Optional[Comment]:
        for root in self.comments:
            for comment in root.walk():
                if comment.id == comment_id:
                    return comment
        return None


def is_valid_comment_box(box: Box) -> bool:
    if not box.assets:
        return False
    if codec.read_bool(box, 'R6') is not True:
        return False
    return not codec.read_content(box, 'R9').is_empty


def sort_newest_first(comments: List[Comment]) -> Tuple[Comment, ...]:
    return tuple(sorted(comments, key=lambda c: (-c.timestamp, c.id)))


class ThreadAssembler:
    """
    Assembles comment trees with a bounded worker pool.

    max_concurrency=1 processes one sub-scan at a time; higher values let
    independent branches be scanned concurrently.
    """

    def __init__(
        self,
        scanner: BoxScanner,
        config: ReputationConfig,
        max_concurrency: Optional[int] = None
    ):
        self._scanner = scanner
        self._config = config
        self._max_concurrency = max_concurrency or config.max_concurrency

    # =========================================================================
    # PREDICATES
    # =========================================================================

    def _predicate(self, type_id: str, pointer: str) -> SearchPredicate:
        form = self._config.filter_form
        return SearchPredicate.build(
            self._config.template_hash,
            registers={
                'R4': codec.filter_bytes(type_id, form),
                'R5': codec.filter_text(pointer, form),
            },
        )

    def root_predicate(self, discussion_id: str) -> SearchPredicate:
        return self._predicate(self._config.discussion_type_id, discussion_id)

    def reply_predicate(self, comment_id: str) -> SearchPredicate:
        return self._predicate(self._config.comment_type_id, comment_id)

    def spam_predicate(self, comment_id: str) -> SearchPredicate:
        return self._predicate(self._config.spam_flag_type_id, comment_id)

    # =========================================================================
    # SECONDARY LOOKUPS
    # =========================================================================

    async def count_spam_flags(self, comment_id: str) -> int:
        """Distinct locked spam-flag boxes targeting comment_id."""
        result = await self._scanner.scan(self.spam_predicate(comment_id))
        flags: Set[str] = set()
        for box in result.boxes:
            if not box.assets:
                continue
            if codec.read_bool(box, 'R6') is not True:
                continue
            flags.add(box.box_id)
        return len(flags)

    def is_spam(self, tally: int) -> bool:
        return tally > self._config.spam_limit

    async def resolve_block_timestamp(self, block_id: Optional[str]) -> int:
        """Block time in ms; 0 when unknown or unreachable."""
        if not block_id:
            return 0
        try:
            timestamp = await self._scanner.client.get_block_timestamp(block_id)
        except TransportError as e:
            logger.error("Could not resolve timestamp of block %s: %s", block_id, e.message)
            return 0
        return timestamp or 0

    async def _cached_timestamp(
        self,
        block_id: Optional[str],
        cache: Dict[str, 'asyncio.Future[int]']
    ) -> int:
        if not block_id:
            return 0
        pending = cache.get(block_id)
        if pending is None:
            pending = asyncio.ensure_future(self.resolve_block_timestamp(block_id))
            cache[block_id] = pending
        return await pending

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    async def assemble(self, discussion_id: str) -> ThreadSnapshot:
        arena: Dict[str, _Node] = {}
        children: Dict[str, List[str]] = {discussion_id: []}
        timestamps: Dict[str, 'asyncio.Future[int]'] = {}
        incomplete: List[str] = []
        failures: List[BaseException] = []

        queue: 'asyncio.Queue[_WorkItem]' = asyncio.Queue()
        queue.put_nowait(_WorkItem(parent_id=discussion_id, depth=0))

        async def process(item: _WorkItem) -> None:
            if item.depth == 0:
                predicate = self.root_predicate(item.parent_id)
            else:
                predicate = self.reply_predicate(item.parent_id)

            result = await self._scanner.scan(predicate)
            if not result.is_complete:
                incomplete.append(item.parent_id)

            discovered: List[_Node] = []
            for box in result.boxes:
                if box.box_id in arena:
                    continue
                if not is_valid_comment_box(box):
                    logger.debug("Box %s is not a valid comment; skipped", box.box_id)
                    continue

                node = _Node(
                    box_id=box.box_id,
                    parent_id=item.parent_id,
                    depth=item.depth,
                    author=box.first_token_id,
                    text=codec.read_content(box, 'R9').text,
                    sentiment=codec.read_bool(box, 'R8') is True,
                    block_id=box.block_id,
                )
                arena[node.box_id] = node
                children.setdefault(item.parent_id, []).append(node.box_id)
                children.setdefault(node.box_id, [])
                discovered.append(node)

            for node in discovered:
                node.spam_count = await self.count_spam_flags(node.box_id)
                node.timestamp = await self._cached_timestamp(node.block_id, timestamps)
                queue.put_nowait(_WorkItem(parent_id=node.box_id, depth=node.depth + 1))

        async def worker() -> None:
            while True:
                item = await queue.get()
                try:
                    await process(item)
                except Exception as e:
                    failures.append(e)
                finally:
                    queue.task_done()

        workers = [
            asyncio.ensure_future(worker()) for _ in range(self._max_concurrency)
        ]
        try:
            await queue.join()
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        if failures:
            raise failures[0]

        comments = self._merge(discussion_id, arena, children)
        status = ScanStatus.PARTIAL if incomplete else ScanStatus.COMPLETE
        if incomplete:
            logger.warning(
                "Discussion %s assembled from incomplete scans (%d sub-trees affected)",
                discussion_id, len(incomplete)
            )

        return ThreadSnapshot(
            discussion_id=discussion_id,
            comments=comments,
            node_count=len(arena),
            scan_status=status,
        )

    def _merge(
        self,
        discussion_id: str,
        arena: Dict[str, _Node],
        children: Dict[str, List[str]]
    ) -> Tuple[Comment, ...]:
        """Bottom-up: deeper nodes are built before their parents."""
        built: Dict[str, Comment] = {}

        for node in sorted(arena.values(), key=lambda n: n.depth, reverse=True):
            replies = sort_newest_first([built[c] for c in children.get(node.box_id, [])])
            built[node.box_id] = Comment(
                id=node.box_id,
                discussion=discussion_id,
                parent_id=node.parent_id,
                author_profile_token_id=node.author,
                text=node.text,
                timestamp=node.timestamp,
                is_spam=self.is_spam(node.spam_count),
                sentiment=node.sentiment,
                replies=replies,
            )

        return sort_newest_first([built[c] for c in children.get(discussion_id, [])])
