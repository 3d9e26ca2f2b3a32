"""
Reconstruction Engine

Derives entities (type registry, proof aggregates, comment threads, the
caller's profile) from raw explorer boxes.
"""

from .types import TypeRegistry, fetch_types, well_known_kinds
from .decoder import decode_box
from .reconciler import EntityReconciler, ReconciliationResult
from .threads import ThreadAssembler, ThreadSnapshot, is_valid_comment_box
from .profile import ProfileRepository, ProfileResolver, caller_commitment
