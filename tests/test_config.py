"""
Configuration Tests

Order under test: defaults < JSON file < environment.
"""

import json
from dataclasses import replace

import pytest

from reputation.config import (
    DEFAULT_CONFIG_PATH, EXPLORER_URIS, FilterForm, Network, ReputationConfig, load_config,
)
from reputation.contracts.base import ConfigError


def _write(tmp_path, data):
    path = tmp_path / "network.json"
    path.write_text(json.dumps(data))
    return path


class TestDefaults:

    def test_defaults(self):
        config = ReputationConfig()
        assert config.network == Network.MAINNET
        assert config.explorer_uri == EXPLORER_URIS[Network.MAINNET]
        assert config.api_uri == "https://api.ergoplatform.com/api/v1"
        assert config.profile_total_supply == 99999999
        assert config.spam_limit == 0
        assert config.filter_form == FilterForm.RENDERED

    def test_shipped_config_file_loads(self):
        assert DEFAULT_CONFIG_PATH.exists()
        config = load_config(environ={})
        assert config.network == Network.MAINNET

    @pytest.mark.parametrize("field,value", [
        ("page_size", 0),
        ("max_concurrency", 0),
        ("spam_limit", -1),
    ])
    def test_invalid_values_raise(self, field, value):
        with pytest.raises(ConfigError):
            ReputationConfig(**{field: value})

    def test_validate_requires_template_hash(self):
        with pytest.raises(ConfigError):
            ReputationConfig().validate()
        config = ReputationConfig(template_hash="ab" * 32)
        assert config.validate() is config

    def test_web_links(self):
        config = ReputationConfig(network=Network.TESTNET)
        assert config.web_link('tx', 'abc').endswith('/transactions/abc')

    def test_address_prefix_follows_network(self):
        assert ReputationConfig().address_prefix == 0x00
        assert ReputationConfig(network=Network.TESTNET).address_prefix == 0x10


class TestLoading:

    def test_file_values(self, tmp_path):
        path = _write(tmp_path, {
            "network": "testnet",
            "template_hash": "cd" * 32,
            "filter_form": "serialized",
            "spam_limit": 3,
            "unknown_key": "ignored",
        })
        config = load_config(path, environ={})

        assert config.network == Network.TESTNET
        assert config.explorer_uri == EXPLORER_URIS[Network.TESTNET]
        assert config.template_hash == "cd" * 32
        assert config.filter_form == FilterForm.SERIALIZED
        assert config.spam_limit == 3

    def test_environment_overrides_file(self, tmp_path):
        path = _write(tmp_path, {"template_hash": "cd" * 32})
        config = load_config(path, environ={
            "REPUTATION_NETWORK": "testnet",
            "REPUTATION_TEMPLATE_HASH": "ef" * 32,
        })
        assert config.network == Network.TESTNET
        assert config.explorer_uri == EXPLORER_URIS[Network.TESTNET]
        assert config.template_hash == "ef" * 32

    def test_explicit_explorer_wins(self, tmp_path):
        path = _write(tmp_path, {})
        config = load_config(path, environ={
            "REPUTATION_NETWORK": "testnet",
            "REPUTATION_EXPLORER_URI": "http://localhost:9000",
        })
        assert config.api_uri == "http://localhost:9000/api/v1"

    def test_config_path_from_environment(self, tmp_path):
        path = _write(tmp_path, {"page_size": 7})
        config = load_config(environ={"REPUTATION_CONFIG": str(path)})
        assert config.page_size == 7

    def test_missing_explicit_file_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.json", environ={})

    @pytest.mark.parametrize("data", [
        {"network": "moonnet"},
        {"filter_form": "compressed"},
    ])
    def test_bad_enum_values_raise(self, tmp_path, data):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, data), environ={})

    def test_bad_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_unknown_network_in_environment_raises(self):
        with pytest.raises(ConfigError):
            load_config(environ={"REPUTATION_NETWORK": "moonnet"})

    def test_replace_keeps_validation(self):
        with pytest.raises(ConfigError):
            replace(ReputationConfig(), page_size=-5)
