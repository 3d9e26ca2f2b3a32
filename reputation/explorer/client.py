"""
Explorer Client

Async HTTP access to the ledger explorer: unspent-box search pages, token
metadata and block headers.

GUARANTEES:
===========
1. Every failure (timeout, network, non-2xx, malformed JSON) surfaces as a
   TransportError with the cause attached
2. No retries and no backoff - callers decide what a failure means
3. One shared httpx.AsyncClient per ExplorerClient; close it with aclose()
   or use the client as an async context manager
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging
import math

import httpx

from ..config import ReputationConfig
from ..contracts.base import TransportError
from ..contracts.ledger import Box, SearchPredicate

logger = logging.getLogger(__name__)

# Explorer timestamps below this are seconds rather than milliseconds
SECONDS_THRESHOLD = 1e11


class ExplorerClient:
    """
    Thin typed wrapper around the explorer REST API.

    transport is only meant for tests (httpx.MockTransport).
    """

    def __init__(
        self,
        config: ReputationConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = "ReputationEngine/1.0"
    ):
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_uri,
            timeout=config.request_timeout,
            headers={'User-Agent': user_agent},
            transport=transport,
        )

    @property
    def config(self) -> ReputationConfig:
        return self._config

    async def __aenter__(self) -> 'ExplorerClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    async def search_unspent(
        self,
        predicate: SearchPredicate,
        offset: int,
        limit: int
    ) -> List[Box]:
        """One page of POST /boxes/unspent/search."""
        data = await self._request(
            'POST',
            '/boxes/unspent/search',
            params={'offset': offset, 'limit': limit},
            json=predicate.to_body(),
        )

        items = data.get('items') if isinstance(data, dict) else None
        if items is None:
            return []
        if not isinstance(items, list):
            raise TransportError("Search response 'items' is not a list")

        boxes = []
        for item in items:
            if not isinstance(item, dict):
                raise TransportError(f"Search response item is not an object: {item!r}")
            try:
                boxes.append(Box.from_api(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise TransportError(f"Malformed box in search response: {e}") from e
        return boxes

    async def get_emission_amount(self, token_id: str) -> int:
        """GET /tokens/{id} → emissionAmount (0 when the field is missing)."""
        data = await self._request('GET', f'/tokens/{token_id}')
        try:
            return int(data.get('emissionAmount') or 0)
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed token response for {token_id}") from e

    async def get_block_timestamp(self, block_id: str) -> Optional[int]:
        """
        GET /blocks/{id} → header timestamp in milliseconds.

        Returns None when the block has no finite numeric timestamp.
        """
        data = await self._request('GET', f'/blocks/{block_id}')
        timestamp = None
        block = data.get('block') if isinstance(data, dict) else None
        header = block.get('header') if isinstance(block, dict) else None
        if isinstance(header, dict):
            timestamp = header.get('timestamp')

        if (isinstance(timestamp, bool)
                or not isinstance(timestamp, (int, float))
                or not math.isfinite(timestamp)):
            logger.warning("No timestamp found for block %s", block_id)
            return None
        return normalize_timestamp(timestamp)

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {path} returned invalid JSON") from e


def normalize_timestamp(timestamp: float) -> int:
    """Seconds are promoted to milliseconds."""
    if timestamp < SECONDS_THRESHOLD:
        return int(timestamp * 1000)
    return int(timestamp)
