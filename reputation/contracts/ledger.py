"""
Ledger Contracts

Immutable representations of what the explorer returns: boxes, their assets
and registers, plus the search predicate and scan result types.

BOUNDARY: Explorer Layer
All ledger data enters the engine through these contracts. Nothing here
decodes register payloads; that is the codec's job.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
from enum import Enum


REGISTER_NAMES: Tuple[str, ...] = ("R4", "R5", "R6", "R7", "R8", "R9")


# =============================================================================
# BOX
# =============================================================================

@dataclass(frozen=True)
class Asset:
    """A (token-id, amount) pair carried by a box."""
    token_id: str
    amount: int


@dataclass(frozen=True)
class RegisterValue:
    """
    One register slot.

    serialized: ledger-native tagged hex (e.g. "0e03616263")
    rendered:   explorer's human rendering (e.g. "616263", "true")
    """
    serialized: str
    rendered: Optional[str] = None
    sigma_type: Optional[str] = None


@dataclass(frozen=True)
class Box:
    """
    Immutable unspent ledger record.

    NEVER MUTATED - only its unspent status changes, and the search endpoint
    already filters on that.
    """
    box_id: str
    value: int
    ergo_tree: str
    creation_height: int
    block_id: Optional[str] = None
    transaction_id: Optional[str] = None
    index: int = 0
    assets: Tuple[Asset, ...] = field(default_factory=tuple)
    registers: Tuple[Tuple[str, RegisterValue], ...] = field(default_factory=tuple)

    def register(self, name: str) -> Optional[RegisterValue]:
        for key, value in self.registers:
            if key == name:
                return value
        return None

    def rendered(self, name: str) -> Optional[str]:
        reg = self.register(name)
        return reg.rendered if reg else None

    def serialized(self, name: str) -> Optional[str]:
        reg = self.register(name)
        return reg.serialized if reg else None

    @property
    def first_token_id(self) -> Optional[str]:
        return self.assets[0].token_id if self.assets else None

    @property
    def first_token_amount(self) -> int:
        return self.assets[0].amount if self.assets else 0

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> 'Box':
        """Create from an explorer item."""
        assets = tuple(
            Asset(token_id=a['tokenId'], amount=int(a.get('amount', 0)))
            for a in (data.get('assets') or [])
        )

        registers = []
        raw_registers = data.get('additionalRegisters') or {}
        for name in REGISTER_NAMES:
            raw = raw_registers.get(name)
            if raw is None:
                continue
            # Node-style payloads carry the bare serialized hex
            if isinstance(raw, str):
                registers.append((name, RegisterValue(serialized=raw)))
                continue
            registers.append((name, RegisterValue(
                serialized=raw.get('serializedValue', ''),
                rendered=raw.get('renderedValue'),
                sigma_type=raw.get('sigmaType'),
            )))

        return cls(
            box_id=data['boxId'],
            value=int(data.get('value', 0)),
            ergo_tree=data.get('ergoTree', ''),
            creation_height=int(data.get('creationHeight', 0)),
            block_id=data.get('blockId'),
            transaction_id=data.get('transactionId'),
            index=int(data.get('index', 0)),
            assets=assets,
            registers=tuple(registers),
        )


# =============================================================================
# SEARCH
# =============================================================================

@dataclass(frozen=True)
class SearchPredicate:
    """
    Structural predicate for the unspent-box search endpoint.

    registers values must already be in the filter form the explorer
    compares against (see codec.filter_*).
    """
    template_hash: str
    registers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    assets: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        template_hash: str,
        registers: Optional[Mapping[str, str]] = None,
        assets: Optional[Tuple[str, ...]] = None
    ) -> 'SearchPredicate':
        return cls(
            template_hash=template_hash,
            registers=tuple(sorted((registers or {}).items())),
            assets=tuple(assets or ()),
        )

    def with_registers(self, extra: Mapping[str, str]) -> 'SearchPredicate':
        merged = dict(self.registers)
        merged.update(extra)
        return SearchPredicate(
            template_hash=self.template_hash,
            registers=tuple(sorted(merged.items())),
            assets=self.assets,
        )

    def to_body(self) -> Dict[str, Any]:
        return {
            'ergoTreeTemplateHash': self.template_hash,
            'registers': dict(self.registers),
            'assets': list(self.assets),
        }


class ScanStatus(Enum):
    """Outcome of an exhaustive scan."""
    COMPLETE = "complete"   # stopped on an empty page
    PARTIAL = "partial"     # a page failed after some boxes were collected
    FAILED = "failed"       # the first page failed


@dataclass(frozen=True)
class ScanResult:
    """
    Boxes gathered by one scan, in the order the explorer returned them.

    A PARTIAL or FAILED scan still carries every box collected before the
    failing page. Callers treat it as a normal (smaller) result set.
    """
    predicate: SearchPredicate
    boxes: Tuple[Box, ...]
    status: ScanStatus
    pages_fetched: int
    error_message: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == ScanStatus.COMPLETE
