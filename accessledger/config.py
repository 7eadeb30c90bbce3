"""
Relay service configuration.

Loaded with a clear priority order:

    1. Environment variables (highest priority)
    2. YAML config file
    3. Built-in defaults

Environment Variable Mapping:
    ACCESSLEDGER_KEY_PATH              -> key_path
    ACCESSLEDGER_LEDGER_PATH           -> ledger_path
    ACCESSLEDGER_CONFIRMATION_TIMEOUT  -> confirmation_timeout
    ACCESSLEDGER_CONFIRMATION_DELAY    -> confirmation_delay
    ACCESSLEDGER_HOST                  -> host
    ACCESSLEDGER_PORT                  -> port
    ACCESSLEDGER_LOG_LEVEL             -> log_level
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

ENV_PREFIX = "ACCESSLEDGER_"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class RelayConfig:
    """Typed settings for one relay process."""

    key_path:             Path  = Path(".accessledger/owner.pem")
    ledger_path:          Path  = Path(".accessledger/ledger.jsonl")
    confirmation_timeout: float = 30.0
    confirmation_delay:   float = 0.0
    host:                 str   = "127.0.0.1"
    port:                 int   = 3000
    log_level:            str   = "INFO"

    def __post_init__(self) -> None:
        self.key_path             = Path(self.key_path)
        self.ledger_path          = Path(self.ledger_path)
        self.confirmation_timeout = float(self.confirmation_timeout)
        self.confirmation_delay   = float(self.confirmation_delay)
        self.port                 = int(self.port)
        self.log_level            = str(self.log_level).upper()
        self.validate()

    def validate(self) -> None:
        if self.confirmation_timeout <= 0:
            raise ValueError("confirmation_timeout must be positive")
        if self.confirmation_delay < 0:
            raise ValueError("confirmation_delay must not be negative")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"unknown log_level {self.log_level!r}")

    @classmethod
    def from_yaml(cls, path: Path) -> "RelayConfig":
        """Load settings from a YAML mapping. Unknown keys are an error."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys in {path}: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        env:  Optional[Mapping[str, str]] = None,
    ) -> "RelayConfig":
        """File (if given) then environment overrides."""
        env = os.environ if env is None else env
        base = cls.from_yaml(path) if path else cls()

        overrides = {}
        for f in fields(cls):
            value = env.get(ENV_PREFIX + f.name.upper())
            if value is not None and value != "":
                overrides[f.name] = value
        if not overrides:
            return base

        values = {f.name: getattr(base, f.name) for f in fields(cls)}
        values.update(overrides)
        return cls(**values)
