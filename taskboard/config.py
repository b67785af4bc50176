# Taskboard: configuration
# Override defaults via taskboard.yaml or the TASKBOARD_DB environment variable.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from .credentials import DEFAULT_ITERATIONS
from .errors import ConfigError

CONFIG_PATH = Path.home() / ".config" / "taskboard" / "taskboard.yaml"
DB_ENV = "TASKBOARD_DB"


@dataclass
class Config:
    """Runtime configuration for the taskboard core."""

    # Storage (":memory:" keeps everything in-process)
    storage_path: str = "~/.local/share/taskboard/taskboard.db"

    # Simulated round-trip before login/signup/reset complete
    network_latency: float = 1.0

    # Credentials
    pbkdf2_iterations: int = DEFAULT_ITERATIONS

    # Behavior
    seed_on_empty: bool = True
    log_level: str = "INFO"

    def resolve(self):
        """Apply environment overrides, expand ~, and check bounds."""
        env_path = os.environ.get(DB_ENV)
        if env_path:
            self.storage_path = env_path
        if self.storage_path != ":memory:":
            self.storage_path = str(Path(self.storage_path).expanduser())

        if self.pbkdf2_iterations < DEFAULT_ITERATIONS:
            raise ConfigError(
                f"pbkdf2_iterations must be >= {DEFAULT_ITERATIONS}, "
                f"got {self.pbkdf2_iterations}"
            )
        if self.network_latency < 0:
            raise ConfigError(f"network_latency must be >= 0, got {self.network_latency}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
            except (yaml.YAMLError, AttributeError, TypeError):
                cfg = cls()
        else:
            cfg = cls()
        cfg.resolve()
        return cfg
