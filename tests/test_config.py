"""Tests for configuration loading."""

from pathlib import Path

import pytest

from review_pipeline.config import PipelineConfig, load_config
from review_pipeline.errors import ConfigError
from review_pipeline.workflows.engine import DEFAULT_REWARD_AMOUNT, RejectionPolicy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("REVIEW_PIPELINE_CONFIG", raising=False)
    monkeypatch.delenv("REVIEW_PIPELINE_STATE", raising=False)


def write(tmp_path, text):
    path = tmp_path / "pipeline.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config()
        assert config.payout_account is None
        assert config.reward_amount == DEFAULT_REWARD_AMOUNT
        assert config.rejection_policy == RejectionPolicy.LENIENT

    def test_full_file(self, tmp_path):
        path = write(tmp_path, """
payout_account: treasury.near
reward_amount: 1000000000000000000000000
rejection_policy: strict
state_file: /tmp/state.json
ledger_file: null
settlement_workers: 4
""")
        config = load_config(path)
        assert config.payout_account == "treasury.near"
        assert config.reward_amount == 10**24
        assert config.rejection_policy == RejectionPolicy.STRICT
        assert config.state_file == Path("/tmp/state.json")
        assert config.ledger_file is None
        assert config.settlement_workers == 4

    def test_env_var_paths(self, tmp_path, monkeypatch):
        path = write(tmp_path, "payout_account: env.near\n")
        monkeypatch.setenv("REVIEW_PIPELINE_CONFIG", str(path))
        monkeypatch.setenv("REVIEW_PIPELINE_STATE", str(tmp_path / "s.json"))

        config = load_config()
        assert config.payout_account == "env.near"
        assert config.state_file == tmp_path / "s.json"

    def test_empty_file_uses_defaults(self, tmp_path):
        config = load_config(write(tmp_path, ""))
        assert config.rejection_policy == RejectionPolicy.LENIENT

    @pytest.mark.parametrize("text", [
        "rejection_policy: sometimes\n",
        "reward_amount: 0\n",
        "reward_amount: ten\n",
        "unknown_key: 1\n",
        "- just\n- a list\n",
        "payout_account: [unclosed\n",
    ])
    def test_invalid_files(self, tmp_path, text):
        with pytest.raises(ConfigError):
            load_config(write(tmp_path, text))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")


class TestPipelineConfig:
    def test_to_dict_from_dict(self):
        config = PipelineConfig(payout_account="x.near", rejection_policy=RejectionPolicy.STRICT)
        assert PipelineConfig.from_dict(config.to_dict()) == config
