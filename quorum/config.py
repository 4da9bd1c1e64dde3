"""Configuration loading for nodes and owner tooling."""

import os
from pathlib import Path
from typing import Iterable

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

CONFIG_ENV_VAR = "QUORUM_CONFIG"


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return self.level.upper()


class CommitteeConfig(BaseModel):
    size: int = Field(default=3, ge=1, description="Number of validating nodes (n)")
    threshold: int = Field(default=2, ge=1, description="Signatures needed to accept (t)")

    @model_validator(mode="after")
    def _check_threshold(self) -> "CommitteeConfig":
        if self.threshold > self.size:
            raise ValueError("threshold cannot exceed committee size")
        return self


class AppConfig(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    committee: CommitteeConfig = Field(default_factory=CommitteeConfig)


DEFAULT_CONFIG = AppConfig()


def config_search_paths(explicit: Path | None = None) -> Iterable[Path]:
    if explicit:
        yield Path(explicit)
    yield Path.cwd() / ".quorum" / "config.yaml"
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        yield Path(env_path)


def load_config(path: Path | None = None) -> AppConfig:
    """Load the first config file found, or the defaults.

    Raises:
        ValueError: If a config file exists but does not validate.
    """
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            try:
                return AppConfig.model_validate(data)
            except ValidationError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
    return DEFAULT_CONFIG.model_copy(deep=True)


def dump_default_config(target: Path) -> None:
    """Write the default configuration as YAML."""
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(), handle, sort_keys=False)
