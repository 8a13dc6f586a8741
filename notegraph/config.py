"""
Configuration for NoteGraph.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from notegraph.utils.exceptions import ConfigurationError


def default_data_dir() -> str:
    """Per-user data directory."""
    return str(Path.home() / ".notegraph")


class StorageConfig(BaseModel):
    """On-disk layout. Both artifacts live under one data directory."""

    data_dir: str = Field(default_factory=default_data_dir)
    database_file: str = "graphalfred.db"
    index_dir: str = "search-index"

    @property
    def db_path(self) -> Path:
        return Path(self.data_dir) / self.database_file

    @property
    def index_path(self) -> Path:
        return Path(self.data_dir) / self.index_dir

    @model_validator(mode="after")
    def check_index_dir(self) -> "StorageConfig":
        """The index directory must sit strictly inside the data directory."""
        data_dir = Path(self.data_dir).expanduser().resolve()
        index_path = self.index_path.expanduser().resolve()
        if data_dir not in index_path.parents:
            raise ValueError(
                f"index_dir {self.index_dir!r} must be a subdirectory of data_dir {self.data_dir!r}"
            )
        return self


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8787


class SearchConfig(BaseModel):
    """Search request limits."""

    default_limit: int = 20
    max_limit: int = 100


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in working directory)

        Returns:
            Config instance

        Raises:
            ConfigurationError: If a numeric variable can't be parsed or the
                index directory isn't inside the data directory

        Environment variables:
            NOTEGRAPH_DATA_DIR: Directory holding the database and search index
            NOTEGRAPH_DATABASE_FILE: Database file name inside the data directory
            NOTEGRAPH_INDEX_DIR: Search index directory name inside the data directory
            NOTEGRAPH_HOST: Bind address
            NOTEGRAPH_PORT: Bind port
            NOTEGRAPH_SEARCH_DEFAULT_LIMIT: Results returned when no limit is given
            NOTEGRAPH_SEARCH_MAX_LIMIT: Upper bound for requested limits
            NOTEGRAPH_LOG_LEVEL: Log level
            NOTEGRAPH_LOG_TO_FILE: Also write JSON logs to NOTEGRAPH_LOG_DIR
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None or value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            try:
                if isinstance(default, int):
                    return int(value)
                if isinstance(default, float):
                    return float(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {key}: {value!r}", context={"key": key}
                ) from e
            return value

        try:
            storage = StorageConfig(
                data_dir=get_env("NOTEGRAPH_DATA_DIR", default_data_dir()),
                database_file=get_env("NOTEGRAPH_DATABASE_FILE", "graphalfred.db"),
                index_dir=get_env("NOTEGRAPH_INDEX_DIR", "search-index"),
            )
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Invalid storage configuration", context={"key": "NOTEGRAPH_INDEX_DIR"}
            ) from e

        return cls(
            storage=storage,
            server=ServerConfig(
                host=get_env("NOTEGRAPH_HOST", "127.0.0.1"),
                port=get_env("NOTEGRAPH_PORT", 8787),
            ),
            search=SearchConfig(
                default_limit=get_env("NOTEGRAPH_SEARCH_DEFAULT_LIMIT", 20),
                max_limit=get_env("NOTEGRAPH_SEARCH_MAX_LIMIT", 100),
            ),
            logging=LoggingConfig(
                level=get_env("NOTEGRAPH_LOG_LEVEL", "INFO"),
                log_to_file=get_env("NOTEGRAPH_LOG_TO_FILE", False),
                log_dir=get_env("NOTEGRAPH_LOG_DIR", "logs"),
                file_rotation=get_env("NOTEGRAPH_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("NOTEGRAPH_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("NOTEGRAPH_LOG_COMPRESSION", "zip"),
                serialize=get_env("NOTEGRAPH_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        # Env sections that differ from defaults override YAML
        final_dict = {**config_dict}
        default = cls()
        for section in ("storage", "server", "search", "logging"):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config

