"""
Engine Configuration

Loads network settings and well-known type ids from config/network.json,
with environment overrides for deployment.

ENVIRONMENT:
============
REPUTATION_CONFIG         path to an alternative JSON file
REPUTATION_NETWORK        "mainnet" | "testnet"
REPUTATION_EXPLORER_URI   explorer base URL (overrides the network default)
REPUTATION_TEMPLATE_HASH  ergo tree template hash of the reputation contract
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import json
import os

from .contracts.base import ConfigError


class Network(Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


class FilterForm(Enum):
    """How register values are written into a search predicate."""
    RENDERED = "rendered"
    SERIALIZED = "serialized"


EXPLORER_URIS = {
    Network.MAINNET: "https://api.ergoplatform.com",
    Network.TESTNET: "https://api-testnet.ergoplatform.com",
}

ADDRESS_PREFIXES = {
    Network.MAINNET: 0x00,
    Network.TESTNET: 0x10,
}

WEB_EXPLORER_URIS = {
    Network.MAINNET: {
        'tx': "https://sigmaspace.io/en/transaction/",
        'address': "https://sigmaspace.io/en/address/",
        'token': "https://sigmaspace.io/en/token/",
    },
    Network.TESTNET: {
        'tx': "https://testnet.ergoplatform.com/transactions/",
        'address': "https://testnet.ergoplatform.com/addresses/",
        'token': "https://testnet.ergoplatform.com/tokens/",
    },
}

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'network.json'


@dataclass(frozen=True)
class ReputationConfig:
    """Unified configuration for the read engine and the service facade."""
    network: Network = Network.MAINNET
    explorer_uri: str = ""

    # Contract identity
    template_hash: str = ""
    type_template_hash: str = ""
    contract_ergo_tree: Optional[str] = None

    # Well-known type NFT ids
    profile_type_id: str = "1820fd428a0b92d61ce3f86cd98240fdeeee8a392900f0b19a2e017d66f79926"
    discussion_type_id: str = "273f60541e8869216ee6aed5552e522d9bea29a69d88e567d089dc834da227cf"
    comment_type_id: str = "6c1ec833dc4aff98458b60e278fc9a0161274671d6a0c36a7429216ca99c3267"
    spam_flag_type_id: str = "89505ed416ad43f2dc4b3c8d0eb949e6ba9993436ceb154a58645f1484e1437a"

    profile_total_supply: int = 99999999
    spam_limit: int = 0

    # Transport / scanning
    page_size: int = 100
    request_timeout: float = 30.0
    max_concurrency: int = 1
    filter_form: FilterForm = FilterForm.RENDERED

    def __post_init__(self):
        if not self.explorer_uri:
            object.__setattr__(self, 'explorer_uri', EXPLORER_URIS[self.network])
        if self.page_size <= 0:
            raise ConfigError("page_size must be positive")
        if self.max_concurrency <= 0:
            raise ConfigError("max_concurrency must be positive")
        if self.spam_limit < 0:
            raise ConfigError("spam_limit must not be negative")

    @property
    def api_uri(self) -> str:
        return self.explorer_uri.rstrip('/') + '/api/v1'

    @property
    def address_prefix(self) -> int:
        """Network byte OR-ed into the first byte of rendered addresses."""
        return ADDRESS_PREFIXES[self.network]

    def web_link(self, kind: str, identifier: str) -> str:
        """Link to the public web explorer ("tx", "address" or "token")."""
        return WEB_EXPLORER_URIS[self.network][kind] + identifier

    def validate(self) -> 'ReputationConfig':
        """Check the settings a live engine cannot run without."""
        if not self.template_hash:
            raise ConfigError(
                "template_hash is required (set REPUTATION_TEMPLATE_HASH "
                "or 'template_hash' in the config file)"
            )
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ReputationConfig':
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            kwargs[key] = value

        try:
            if 'network' in kwargs:
                kwargs['network'] = Network(kwargs['network'])
            if 'filter_form' in kwargs:
                kwargs['filter_form'] = FilterForm(kwargs['filter_form'])
        except ValueError as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        return cls(**kwargs)


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None
) -> ReputationConfig:
    """
    Load configuration.

    Order: dataclass defaults < JSON file < environment.
    A missing default file is not an error; a missing explicit one is.
    """
    env = os.environ if environ is None else environ

    if config_path is None and env.get('REPUTATION_CONFIG'):
        config_path = Path(env['REPUTATION_CONFIG'])

    data: Dict[str, Any] = {}
    path = config_path or DEFAULT_CONFIG_PATH
    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    config = ReputationConfig.from_dict(data)

    overrides: Dict[str, Any] = {}
    if env.get('REPUTATION_NETWORK'):
        try:
            network = Network(env['REPUTATION_NETWORK'])
        except ValueError as e:
            raise ConfigError(f"Unknown network: {env['REPUTATION_NETWORK']}") from e
        overrides['network'] = network
        # Network switch resets the explorer unless the file pinned one
        if not data.get('explorer_uri'):
            overrides['explorer_uri'] = EXPLORER_URIS[network]
    if env.get('REPUTATION_EXPLORER_URI'):
        overrides['explorer_uri'] = env['REPUTATION_EXPLORER_URI']
    if env.get('REPUTATION_TEMPLATE_HASH'):
        overrides['template_hash'] = env['REPUTATION_TEMPLATE_HASH']

    return replace(config, **overrides) if overrides else config
