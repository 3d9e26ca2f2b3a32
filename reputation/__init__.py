"""
Reputation Ledger Read Engine

Reconstructs reputation proofs, discussion threads and profiles from the
unspent boxes of a public ledger explorer.
"""

from .config import ReputationConfig, Network, FilterForm, load_config
from .service import ReputationService, ReadModelStore

__version__ = "1.0.0"
