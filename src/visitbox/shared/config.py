from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING
from os import PathLike
from pathlib import Path
from tomllib import load
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONFIG_PATH = Path("config.toml")


class General(BaseModel):
    title: str


class Logging(BaseModel):
    level: int

    @field_validator("level", mode="before")
    @classmethod
    def convert_log_level(cls, value):
        log_levels = {
            "DEBUG": DEBUG,
            "INFO": INFO,
            "WARNING": WARNING,
            "ERROR": ERROR,
            "CRITICAL": CRITICAL,
        }
        return log_levels.get(value.upper(), INFO)


class Paths(BaseModel):
    logs: str


class Store(BaseModel):
    host: str = "redis-server"
    port: int = 6379
    db: int = 0
    key: str = "visits"

    # "atomic" uses INCR, "read-write" keeps the GET/SET sequence and its race
    mode: Literal["atomic", "read-write"] = "atomic"

    timeout: float = Field(default=2.0, gt=0)  # seconds per store call
    retries: int = Field(default=0, ge=0)
    backoff: float = Field(default=0.1, ge=0)  # seconds, doubled per retry


class EncryptionContext(BaseModel):
    """Pairs bound to every demo ciphertext. Not secret, all three required."""

    model_config = ConfigDict(extra="forbid")

    stage: str
    purpose: str
    origin: str


class Crypto(BaseModel):
    key_name: str = "rsa-name"
    key_namespace: str = "rsa-namespace"
    modulus_length: int = Field(default=3072, ge=2048)
    private_key_path: str | None = None

    context: EncryptionContext


class Network(BaseModel):
    host: str
    port: int
    reload: bool


class Config(BaseModel):
    general: General
    paths: Paths
    logging: Logging
    store: Store
    crypto: Crypto
    network: Network


def load_config(
    shared_config_file: PathLike = DEFAULT_CONFIG_PATH,
    specific_config_file: PathLike | None = None,
) -> Config:
    """Load and merge configurations from TOML files."""
    # Load shared config
    with Path(shared_config_file).open("rb") as f:
        config_data = load(f)

    # Load and merge specific config if provided
    if specific_config_file:
        with Path(specific_config_file).open("rb") as f:
            specific_data = load(f)
            config_data.update(specific_data)

    return Config(**config_data)
