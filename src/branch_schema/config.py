"""
Configuration system for branch-schema using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError


DEFAULT_CONNECTION_NAME = "DefaultConnection"


class TenantDirectoryConfig(BaseModel):
    """Location of the tenant directory inside the master database."""

    schema_name: str = Field("public", description="Schema holding the tenant table")
    table: str = Field("Tenants", description="Tenant directory table")
    column: str = Field(
        "ConnectionString", description="Column holding each tenant's connection string"
    )

    @field_validator("schema_name", "table", "column")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Identifier must not be empty")
        if '"' in v:
            raise ValueError(f"Identifier must not contain double quotes: {v}")
        return v

    @property
    def full_table_name(self) -> str:
        """Get the full table name with schema."""
        return f"{self.schema_name}.{self.table}"


class ReconciliationConfig(BaseModel):
    """Schema reconciliation settings."""

    schema_name: str = Field("public", description="Schema holding the Branches table")
    mode: Literal["apply", "dry_run"] = Field("apply", description="Reconciliation mode")
    advisory_lock: bool = Field(
        False, description="Hold a PostgreSQL advisory lock while reconciling a database"
    )
    connect_timeout: float = Field(30.0, description="Connection timeout in seconds")
    command_timeout: float = Field(60.0, description="Command timeout in seconds")

    @field_validator("schema_name")
    @classmethod
    def validate_schema_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Schema name must not be empty")
        if '"' in v:
            raise ValueError(f"Schema name must not contain double quotes: {v}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class BranchSchemaSettings(BaseSettings):
    """Main branch-schema configuration."""

    service_name: str = Field("branch-schema", description="Service name")
    debug: bool = Field(False, description="Enable debug mode")

    # Named connection strings, looked up case-insensitively
    connection_strings: Dict[str, str] = Field(
        default_factory=dict, description="Named PostgreSQL connection strings"
    )
    default_connection_name: str = Field(
        DEFAULT_CONNECTION_NAME,
        description="Connection string used when no explicit one is given",
    )

    tenant_directory: TenantDirectoryConfig = Field(
        default_factory=TenantDirectoryConfig,
        description="Tenant directory configuration",
    )
    reconciliation: ReconciliationConfig = Field(
        default_factory=ReconciliationConfig,
        description="Reconciliation configuration",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BRANCH_SCHEMA_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "BranchSchemaSettings":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file must contain a mapping: {path}"
                )

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def get_connection_string(self, name: str) -> Optional[str]:
        """Get a named connection string, or None when it is missing or blank."""
        for key, value in self.connection_strings.items():
            if key.lower() == name.lower():
                return value if value and value.strip() else None
        return None

    def require_connection_string(self, name: Optional[str] = None) -> str:
        """Get a named connection string or raise ConfigurationError."""
        name = name or self.default_connection_name
        value = self.get_connection_string(name)
        if value is None:
            raise ConfigurationError(
                f"Connection string '{name}' is not configured",
                {"setting": f"connection_strings.{name}"},
            )
        return value

    def validate_config(self) -> None:
        """Validate the configuration for consistency."""
        if self.get_connection_string(self.default_connection_name) is None:
            raise ConfigurationError(
                f"Connection string '{self.default_connection_name}' is not configured"
            )

        for name, value in self.connection_strings.items():
            if value and value.strip():
                try:
                    ConnectionConfig.from_url(value)
                except Exception as e:
                    raise ConfigurationError(
                        f"Connection string '{name}' is invalid: {e}"
                    ) from e

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
