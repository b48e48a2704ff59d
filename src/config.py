"""Configuration models and YAML loader."""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")


class TableConfig(BaseModel):
    """Initial table settings."""
    min_bpm: int = Field(120, ge=40, le=300, description="First BPM of the 21-value window")
    pitch_max: float = Field(6.0, ge=0.0, le=50.0, description="Pitch ceiling in percent")
    source_bpm: int = Field(120, ge=40, le=300, description="Initial lookup source BPM")
    dest_bpm: int = Field(121, ge=40, le=300, description="Initial lookup destination BPM")


class ApiConfig(BaseModel):
    enabled: bool = Field(True, description="Serve the HTTP API")
    host: str = Field("127.0.0.1", description="Bind address")
    port: int = Field(8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RootConfig(BaseModel):
    table: TableConfig = Field(default_factory=TableConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Optional[Union[str, Path]] = None) -> RootConfig:
    """Load configuration from a YAML file.

    With no path, ``config.yaml`` in the working directory is used when it
    exists and defaults otherwise. An explicit path that does not exist
    raises FileNotFoundError.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            log.info("No config.yaml found, using defaults")
            return RootConfig()
        path = DEFAULT_CONFIG_PATH

    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    log.info(f"Loaded configuration from {path}")
    return RootConfig(**data)
