"""
Box Decoder

Turns a raw Box into a DecodedBox using the reputation register layout:

    asset[0]  governing token id / amount
    R4        type NFT id (Coll[Byte])
    R5        object pointer (UTF-8 text in Coll[Byte])
    R6        locked flag (Boolean)
    R7        owner commitment (Coll[Byte] of proposition bytes)
    R8        polarization (Boolean)
    R9        content (UTF-8 text or JSON in Coll[Byte])
"""

from __future__ import annotations
from typing import Optional

from ..contracts.entities import DecodedBox
from ..contracts.ledger import Box
from ..explorer import codec
from .types import TypeRegistry


def decode_box(box: Box, registry: TypeRegistry) -> Optional[DecodedBox]:
    """None for boxes carrying no asset (they govern nothing)."""
    token_id = box.first_token_id
    if token_id is None:
        return None

    return DecodedBox(
        box=box,
        type=registry.resolve(codec.read_bytes_hex(box, 'R4')),
        token_id=token_id,
        token_amount=box.first_token_amount,
        object_pointer=codec.read_text(box, 'R5'),
        is_locked=codec.read_bool(box, 'R6') is True,
        polarization=codec.read_bool(box, 'R8') is True,
        content=codec.read_content(box, 'R9'),
        owner_serialized=box.serialized('R7'),
    )
