"""Pipeline configuration loaded from YAML."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import jsonschema
import yaml

from .errors import ConfigError
from .workflows.engine import DEFAULT_REWARD_AMOUNT, RejectionPolicy

CONFIG_ENV_VAR = "REVIEW_PIPELINE_CONFIG"
STATE_ENV_VAR = "REVIEW_PIPELINE_STATE"

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "payout_account": {"type": ["string", "null"]},
        "reward_amount": {"type": "integer", "minimum": 1},
        "rejection_policy": {"enum": [p.value for p in RejectionPolicy]},
        "state_file": {"type": "string"},
        "ledger_file": {"type": ["string", "null"]},
        "settlement_workers": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}


@dataclass
class PipelineConfig:
    """Settings for a workflow engine and its storage."""

    payout_account: Optional[str] = None
    reward_amount: int = DEFAULT_REWARD_AMOUNT
    rejection_policy: RejectionPolicy = RejectionPolicy.LENIENT
    state_file: Path = Path("data/state.json")
    ledger_file: Optional[Path] = Path("data/payments.json")
    settlement_workers: int = 2

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineConfig":
        """Build a config from a parsed mapping, validating it first."""
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e.message}") from e

        config = cls()
        if "payout_account" in data:
            config.payout_account = data["payout_account"]
        if "reward_amount" in data:
            config.reward_amount = data["reward_amount"]
        if "rejection_policy" in data:
            config.rejection_policy = RejectionPolicy(data["rejection_policy"])
        if "state_file" in data:
            config.state_file = Path(data["state_file"])
        if "ledger_file" in data:
            config.ledger_file = Path(data["ledger_file"]) if data["ledger_file"] else None
        if "settlement_workers" in data:
            config.settlement_workers = data["settlement_workers"]
        return config

    def to_dict(self) -> dict:
        return {
            "payout_account": self.payout_account,
            "reward_amount": self.reward_amount,
            "rejection_policy": self.rejection_policy.value,
            "state_file": str(self.state_file),
            "ledger_file": str(self.ledger_file) if self.ledger_file else None,
            "settlement_workers": self.settlement_workers,
        }


def load_config(path: Optional[Path] = None) -> PipelineConfig:
    """Load configuration from a YAML file.

    The path defaults to ``$REVIEW_PIPELINE_CONFIG``. With neither set the
    built-in defaults are used. ``$REVIEW_PIPELINE_STATE`` overrides the
    state file location either way.
    """
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        path = Path(os.environ[CONFIG_ENV_VAR])

    if path is None:
        config = PipelineConfig()
    else:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        config = PipelineConfig.from_dict(data)

    if os.environ.get(STATE_ENV_VAR):
        config.state_file = Path(os.environ[STATE_ENV_VAR])

    return config
