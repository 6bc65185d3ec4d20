"""Configuration management for the Alexa media controller.

Uses pydantic-settings with env_prefix for environment variable configuration.
A YAML file can provide the same fields; environment variables fill whatever
the file leaves out.
"""

import pathlib
from typing import Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_DIR = pathlib.Path.home() / ".amc"


class AlexaSettings(BaseSettings):
    """Alexa account settings.

    Environment variables (with AMC_ALEXA_ prefix):
        AMC_ALEXA_AMAZON_DOMAIN: Amazon site the account belongs to (default: amazon.co.uk).
        AMC_ALEXA_EMAIL: Account e-mail the stored session is validated against.
        AMC_ALEXA_DEBUG: Enable alexapy request debugging.
    """

    model_config = SettingsConfigDict(env_prefix="AMC_ALEXA_")

    amazon_domain: str = "amazon.co.uk"
    email: str = ""
    debug: bool = False


class RedisSettings(BaseSettings):
    """Redis connection settings for the redis credential store.

    Environment variables (with AMC_REDIS_ prefix):
        AMC_REDIS_HOST: Redis server hostname (default: localhost).
        AMC_REDIS_PORT: Redis server port (default: 6379).
        AMC_REDIS_USERNAME: Redis ACL username (optional).
        AMC_REDIS_PASSWORD: Redis password (optional).
        AMC_REDIS_DB: Redis database number (default: 0).
        AMC_REDIS_KEY: Name of the hash holding the credential record (default: amc).
    """

    model_config = SettingsConfigDict(env_prefix="AMC_REDIS_")

    host: str = "localhost"
    port: int = 6379
    username: str | None = None
    password: str | None = None
    db: int = 0
    key: str = "amc"

    @property
    def url(self) -> str:
        """Build Redis connection URL from components."""
        if self.username and self.password:
            return f"redis://{self.username}:{self.password}@{self.host}:{self.port}/{self.db}"
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class ControllerConfig(BaseSettings):
    """Top level configuration for the controller.

    Environment variables (with AMC_ prefix):
        AMC_STORE_BACKEND: Where credentials live: file, redis, database or memory.
        AMC_CONFIG_DIR: Directory for the credential file and alexapy cookie cache.
        AMC_DATABASE_URL: SQLAlchemy URL for the database backend.
        AMC_LOG_LEVEL: Logging level name.

    Attributes:
        alexa: Alexa account settings.
        redis: Redis connection settings, used by the redis backend only.
    """

    model_config = SettingsConfigDict(env_prefix="AMC_")

    store_backend: Literal["file", "redis", "database", "memory"] = "file"
    config_dir: pathlib.Path = DEFAULT_CONFIG_DIR
    database_url: str | None = None
    log_level: str = "INFO"

    # AIDEV-NOTE: default_factory delays env parsing of nested settings until the config is built
    alexa: AlexaSettings = Field(default_factory=lambda: AlexaSettings())
    redis: RedisSettings = Field(default_factory=lambda: RedisSettings())

    @property
    def config_file(self) -> pathlib.Path:
        """Path of the JSON credential file."""
        return self.config_dir / "config.json"

    @property
    def resolved_database_url(self) -> str:
        """Database URL, defaulting to a SQLite file inside config_dir."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.config_dir / 'credentials.db'}"


def load_config(config_path: pathlib.Path | None = None) -> ControllerConfig:
    """Load the controller configuration.

    Args:
        config_path: Optional YAML file. When omitted only the environment is used.

    Returns:
        Validated configuration.

    Raises:
        FileNotFoundError: If config_path does not exist.
        pydantic.ValidationError: If the file or environment hold invalid values.
    """
    if config_path is None:
        return ControllerConfig()
    with config_path.open("r") as file:
        config_data = yaml.safe_load(file) or {}
    if not isinstance(config_data, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return ControllerConfig(**config_data)
