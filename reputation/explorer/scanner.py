"""
Box Scanner

Exhaustive paginated search over the unspent-box endpoint.

PRINCIPLES:
===========
1. Request successive offset windows until an empty page comes back
2. The first failing page ends the scan - no retry, no backoff
3. Whatever was collected before the failure is returned, marked PARTIAL
4. No decoding happens here; boxes come back exactly as the explorer sent them
"""

from __future__ import annotations
from typing import List
import logging

from ..contracts.base import TransportError
from ..contracts.ledger import Box, ScanResult, ScanStatus, SearchPredicate
from .client import ExplorerClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class BoxScanner:
    """
    Runs a SearchPredicate to exhaustion.

    GUARANTEES:
    ===========
    1. scan() never raises for transport problems
    2. Box order is the explorer's page order
    3. Each call builds its own result; nothing is shared between scans
    """

    def __init__(self, client: ExplorerClient, page_size: int = DEFAULT_PAGE_SIZE):
        self._client = client
        self._page_size = page_size

    @property
    def client(self) -> ExplorerClient:
        return self._client

    async def scan(self, predicate: SearchPredicate) -> ScanResult:
        collected: List[Box] = []
        offset = 0
        pages = 0

        while True:
            try:
                page = await self._client.search_unspent(
                    predicate, offset=offset, limit=self._page_size
                )
            except TransportError as e:
                status = ScanStatus.PARTIAL if collected else ScanStatus.FAILED
                logger.error(
                    "Scan aborted at offset %d (%d boxes kept): %s",
                    offset, len(collected), e.message
                )
                return ScanResult(
                    predicate=predicate,
                    boxes=tuple(collected),
                    status=status,
                    pages_fetched=pages,
                    error_message=e.message,
                )

            if not page:
                break

            pages += 1
            collected.extend(page)
            offset += self._page_size

        logger.debug("Scan complete: %d boxes in %d pages", len(collected), pages)
        return ScanResult(
            predicate=predicate,
            boxes=tuple(collected),
            status=ScanStatus.COMPLETE,
            pages_fetched=pages,
        )

    async def scan_boxes(self, predicate: SearchPredicate) -> List[Box]:
        """Convenience wrapper returning only the boxes."""
        result = await self.scan(predicate)
        return list(result.boxes)
