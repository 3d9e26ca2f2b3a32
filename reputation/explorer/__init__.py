"""
Explorer Layer

Everything that touches the ledger explorer: register codec, wallet
address handling, HTTP client and the paginated box scanner.
"""

from .client import ExplorerClient, normalize_timestamp
from .scanner import BoxScanner, DEFAULT_PAGE_SIZE
from .address import ownership_commitment, address_to_ergo_tree, commitment_to_address
from . import codec
