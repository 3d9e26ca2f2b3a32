"""
API Mapper
==========

Transforms published read models into JSON-ready dicts for the frontend.
Field names mirror what the UI layer already consumes.
"""
from typing import Any, Dict, Optional

from ..contracts.entities import (
    Comment, ConflictWarning, DecodedBox, ReputationProofAggregate, TypeDescriptor
)
from ..engine.reconciler import ReconciliationResult
from ..engine.threads import ThreadSnapshot
from ..engine.types import TypeRegistry


def map_type(descriptor: TypeDescriptor) -> Dict[str, Any]:
    return {
        "tokenId": descriptor.token_id,
        "boxId": descriptor.box_id,
        "typeName": descriptor.type_name,
        "description": descriptor.description,
        "schemaURI": descriptor.schema_uri,
        "isRepProof": descriptor.is_rep_proof,
        "kind": descriptor.kind.value,
    }


def map_comment(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "discussion": comment.discussion,
        "parentId": comment.parent_id,
        "authorProfileTokenId": comment.author_profile_token_id,
        "text": comment.text,
        "timestamp": comment.timestamp,
        "isSpam": comment.is_spam,
        "sentiment": comment.sentiment,
        "submitting": comment.submitting,
        "replies": [map_comment(reply) for reply in comment.replies],
    }


def map_thread(snapshot: ThreadSnapshot) -> Dict[str, Any]:
    return {
        "discussion": snapshot.discussion_id,
        "status": snapshot.scan_status.value,
        "count": snapshot.node_count,
        "comments": [map_comment(c) for c in snapshot.comments],
    }


def _map_box(box: DecodedBox) -> Dict[str, Any]:
    return {
        "box_id": box.box_id,
        "type": map_type(box.type),
        "token_id": box.token_id,
        "token_amount": box.token_amount,
        "object_pointer": box.object_pointer,
        "is_locked": box.is_locked,
        "polarization": box.polarization,
        "content": box.content.value,
        "creation_height": box.box.creation_height,
    }


def map_proof(proof: ReputationProofAggregate) -> Dict[str, Any]:
    return {
        "token_id": proof.token_id,
        "type": map_type(proof.type),
        "total_amount": proof.total_amount,
        "owner_address": proof.owner_address,
        "owner_serialized": proof.owner_serialized,
        "can_be_spend": proof.can_be_spend,
        "number_of_boxes": proof.number_of_boxes,
        "current_boxes": [_map_box(b) for b in proof.current_boxes],
        "data": proof.data,
    }


def _map_conflict(conflict: ConflictWarning) -> Dict[str, Any]:
    return {
        "token_id": conflict.token_id,
        "expected_owner": conflict.expected_owner,
        "found_owner": conflict.found_owner,
        "conflicting_box_id": conflict.conflicting_box_id,
    }


def map_proofs(result: ReconciliationResult) -> Dict[str, Any]:
    return {
        "status": result.scan_status.value,
        "proofs": [map_proof(p) for p in result.proofs],
        "conflicts": [_map_conflict(c) for c in result.conflicts],
    }


def map_types(registry: TypeRegistry) -> Dict[str, Any]:
    return {"types": [map_type(t) for t in registry]}


def map_profile(profile: Optional[ReputationProofAggregate]) -> Dict[str, Any]:
    return {"profile": map_proof(profile) if profile else None}
