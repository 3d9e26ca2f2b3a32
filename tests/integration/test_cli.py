"""
CLI Tests

The command line drives the same service; the explorer is the in-memory
ledger injected through ReputationService.from_config.
"""

import json

import pytest

import reputation.__main__ as cli
from reputation.contracts.base import ConfigError

from conftest import hex_id

DISCUSSION = "cli-thread"
TOKEN = hex_id(0x5151)


@pytest.fixture
def patched_service(monkeypatch, make_service):
    def from_config(config_path=None, **kwargs):
        return make_service(**kwargs)
    monkeypatch.setattr(cli.ReputationService, "from_config", staticmethod(from_config))


def test_threads_text_output(ledger, config, alice, patched_service, capsys):
    ledger.add_box(hex_id(1), TOKEN, config.discussion_type_id, DISCUSSION,
                   alice.commitment, content="from the cli")

    assert cli.main(["threads", DISCUSSION]) == 0
    out = capsys.readouterr().out
    assert f"Discussion {DISCUSSION}: 1 comments" in out
    assert "from the cli" in out


def test_proofs_json_output(ledger, config, alice, patched_service, capsys):
    ledger.emissions[TOKEN] = 3
    ledger.add_box(hex_id(1), TOKEN, config.comment_type_id, "x", alice.commitment)

    assert cli.main(["--json", "proofs"]) == 0
    body = json.loads(capsys.readouterr().out)
    assert body["proofs"][0]["token_id"] == TOKEN


def test_profile_requires_address():
    with pytest.raises(SystemExit):
        cli.main(["profile"])


def test_profile_missing(patched_service, alice, capsys):
    assert cli.main(["profile", "--address", alice.address]) == 0
    assert "No profile found" in capsys.readouterr().out


def test_engine_errors_exit_non_zero(monkeypatch, capsys):
    def from_config(config_path=None, **kwargs):
        raise ConfigError("template_hash is required")
    monkeypatch.setattr(cli.ReputationService, "from_config", staticmethod(from_config))

    assert cli.main(["types"]) == 1
    assert "INVALID_CONFIG" in capsys.readouterr().err
