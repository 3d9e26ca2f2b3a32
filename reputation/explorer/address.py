"""
Ownership Commitments

Derives the R7 ownership commitment (serialized Coll[Byte] of the owner's
proposition bytes) from a base58 wallet address.

ADDRESS LAYOUT:
===============
prefix (network + type) | content | checksum (first 4 bytes of blake2b-256)

    type 1 (P2PK): content is a 33-byte public key, tree = 0008cd + key
    type 3 (P2S):  content is the ergo tree itself
    type 2 (P2SH): not supported (the tree cannot be recovered)
"""

from __future__ import annotations
from typing import Optional
import hashlib

import base58

from ..contracts.base import AddressError
from .codec import bytes_to_hex, encode_coll_byte, hex_to_bytes, decode_coll_byte

P2PK_TYPE = 0x01
P2SH_TYPE = 0x02
P2S_TYPE = 0x03

P2PK_TREE_PREFIX = bytes.fromhex("0008cd")
CHECKSUM_LENGTH = 4


def _checksum(payload: bytes) -> bytes:
    return hashlib.blake2b(payload, digest_size=32).digest()[:CHECKSUM_LENGTH]


def address_to_ergo_tree(address: str) -> bytes:
    """Proposition bytes of a P2PK or P2S address."""
    try:
        raw = base58.b58decode(address)
    except ValueError as e:
        raise AddressError(f"Address is not valid base58: {address!r}") from e

    if len(raw) <= 1 + CHECKSUM_LENGTH:
        raise AddressError(f"Address too short: {address!r}")

    body, checksum = raw[:-CHECKSUM_LENGTH], raw[-CHECKSUM_LENGTH:]
    if _checksum(body) != checksum:
        raise AddressError(f"Address checksum mismatch: {address!r}")

    address_type = body[0] & 0x0F
    content = body[1:]

    if address_type == P2PK_TYPE:
        if len(content) != 33:
            raise AddressError(f"P2PK address must carry a 33-byte key: {address!r}")
        return P2PK_TREE_PREFIX + content
    if address_type == P2S_TYPE:
        return content
    raise AddressError(f"Unsupported address type {address_type} for {address!r}")


def ergo_tree_to_address(ergo_tree: bytes, network_prefix: int = 0x00) -> str:
    """Inverse of address_to_ergo_tree (P2PK trees get a P2PK address)."""
    if ergo_tree.startswith(P2PK_TREE_PREFIX) and len(ergo_tree) == 36:
        body = bytes([network_prefix | P2PK_TYPE]) + ergo_tree[3:]
    else:
        body = bytes([network_prefix | P2S_TYPE]) + ergo_tree
    return base58.b58encode(body + _checksum(body)).decode('ascii')


def ownership_commitment(address: str) -> str:
    """Serialized R7 value identifying the owner of address."""
    return encode_coll_byte(address_to_ergo_tree(address))


def commitment_to_address(commitment: str, network_prefix: int = 0x00) -> Optional[str]:
    """Best-effort rendering of a recorded commitment back to an address."""
    try:
        return ergo_tree_to_address(decode_coll_byte(commitment), network_prefix)
    except ValueError:
        return None


def ergo_tree_hex(address: str) -> str:
    return bytes_to_hex(address_to_ergo_tree(address))


def commitment_from_tree(ergo_tree: str) -> str:
    return encode_coll_byte(hex_to_bytes(ergo_tree))
