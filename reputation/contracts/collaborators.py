"""
External Collaborator Interfaces

Wallet and transaction submission live outside this package. The engine
only talks to them through these protocols.
"""

from __future__ import annotations
from typing import Any, Optional, Protocol, runtime_checkable

from .entities import DecodedBox


@runtime_checkable
class WalletCollaborator(Protocol):
    """Connected wallet. Only the change address is ever read."""

    async def get_change_address(self) -> Optional[str]:
        ...


@runtime_checkable
class SubmissionCollaborator(Protocol):
    """
    Builds, signs and broadcasts a reputation-proof transaction.

    Returns the transaction id once the transaction is accepted for
    broadcast (NOT confirmed). Raises on any failure.

    target_pointer None means "point at the newly minted token itself".
    """

    async def submit(
        self,
        amount: int,
        total_supply: int,
        type_id: str,
        target_pointer: Optional[str],
        polarization: bool,
        content: Any,
        locked: bool,
        input_box: Optional[DecodedBox] = None,
    ) -> str:
        ...
