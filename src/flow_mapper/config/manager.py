"""
Configuration Manager for Flow Mapper.

Handles YAML-configurable settings for schema parsing, catalog
reflection, default-mode operator scope, and logging.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..catalog.operators import OperatorKind
from ..exceptions import UnsupportedOperatorKind


DEFAULT_OP_TYPES_IN_SCOPE = ["attribute", "belongs_to", "has_one", "has_many"]


class MappingConfig(BaseModel):
    """Schema parsing and operator catalog settings."""

    locale_key: str = Field(
        default="data_flow_schema", min_length=1, description="Root key of the schema section"
    )
    op_types_in_scope: List[str] = Field(
        default_factory=lambda: list(DEFAULT_OP_TYPES_IN_SCOPE),
        description="Operator kinds used when nodes are generated from a class",
    )
    include_instance_methods: bool = Field(
        default=False, description="Catalogue public instance methods as operators"
    )
    allow_reclassification: bool = Field(
        default=False,
        description="Let operator_type override the kind of an already catalogued operator",
    )
    remove_columns: List[str] = Field(
        default_factory=list, description="Operator names or glob patterns removed for every class"
    )
    remove_internal_columns: bool = Field(
        default=False, description="Remove id, created_at and updated_at for every class"
    )

    @field_validator("op_types_in_scope")
    @classmethod
    def validate_op_types(cls, v: List[str]) -> List[str]:
        """Validate operator kinds against the supported set."""
        try:
            return [OperatorKind.parse(kind).value for kind in v]
        except UnsupportedOperatorKind as e:
            raise ValueError(str(e))

    def kinds_in_scope(self) -> List[OperatorKind]:
        return [OperatorKind.parse(kind) for kind in self.op_types_in_scope]


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level",
    )
    format: str = Field(default="json", pattern="^(json|console)$", description="Log format")
    file: Optional[str] = Field(default=None, description="Optional log file path")
    redact_raw_content: bool = Field(
        default=True, description="Keep rendered schema text out of log output"
    )


class ConfigManager:
    """
    Manages YAML-configurable settings for Flow Mapper.

    Values come from the configuration file, then environment variable
    overrides, and are validated by the section models.
    """

    ENV_MAPPINGS = {
        "FLOW_MAPPER_LOCALE_KEY": ("mapping", "locale_key"),
        "FLOW_MAPPER_OP_TYPES_IN_SCOPE": ("mapping", "op_types_in_scope"),
        "FLOW_MAPPER_INCLUDE_INSTANCE_METHODS": ("mapping", "include_instance_methods"),
        "FLOW_MAPPER_ALLOW_RECLASSIFICATION": ("mapping", "allow_reclassification"),
        "FLOW_MAPPER_REMOVE_INTERNAL_COLUMNS": ("mapping", "remove_internal_columns"),
        "FLOW_MAPPER_LOG_LEVEL": ("logging", "level"),
        "FLOW_MAPPER_LOG_FORMAT": ("logging", "format"),
    }

    BOOLEAN_KEYS = {
        "include_instance_methods",
        "allow_reclassification",
        "remove_internal_columns",
        "redact_raw_content",
    }

    LIST_KEYS = {"op_types_in_scope", "remove_columns"}

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize ConfigManager.

        Args:
            config_path: Path to YAML configuration file. If None, uses default locations.
        """
        self.config_path = self._resolve_config_path(config_path)
        self._config_data: Dict[str, Any] = {}
        self._load_config()

    def _resolve_config_path(self, config_path: Optional[Union[str, Path]]) -> Path:
        """Resolve configuration file path."""
        if config_path:
            return Path(config_path)

        env_path = os.getenv("FLOW_MAPPER_CONFIG_PATH")
        if env_path:
            return Path(env_path)

        default_paths = [
            Path("flow_mapper.yaml"),
            Path("config/flow_mapper.yaml"),
        ]

        for path in default_paths:
            if path.exists():
                return path

        return Path("flow_mapper.yaml")

    def _load_config(self) -> None:
        """Load configuration from YAML file, falling back to defaults."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML configuration: {e}")

            if not isinstance(data, dict):
                raise ValueError(
                    f"Configuration in {self.config_path} should be a mapping of sections"
                )
            self._config_data = data
        else:
            self._config_data = {}

        self._apply_env_overrides()
        self._initialize_config_sections()

    def _initialize_config_sections(self) -> None:
        """Initialize configuration sections from loaded data."""
        try:
            self.mapping = MappingConfig(**(self._config_data.get("mapping") or {}))
            self.logging = LoggingConfig(**(self._config_data.get("logging") or {}))
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {self.config_path}: {e}")

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        for env_var, (section, key) in self.ENV_MAPPINGS.items():
            value_str = os.getenv(env_var)
            if value_str is None:
                continue

            converted_value: Any = value_str
            if key in self.BOOLEAN_KEYS:
                converted_value = value_str.lower() in ("true", "1", "yes", "on")
            elif key in self.LIST_KEYS:
                converted_value = [item.strip() for item in value_str.split(",") if item.strip()]

            if not isinstance(self._config_data.get(section), dict):
                self._config_data[section] = {}
            self._config_data[section][key] = converted_value

    def get_config_dict(self) -> Dict[str, Any]:
        """Get the full configuration as a dictionary."""
        return {
            "mapping": self.mapping.model_dump(),
            "logging": self.logging.model_dump(),
        }

    def save_config(self, path: Optional[Union[str, Path]] = None) -> None:
        """Save current configuration to YAML file."""
        save_path = Path(path) if path else self.config_path
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w", encoding="utf-8") as f:
            yaml.dump(self.get_config_dict(), f, default_flow_style=False, indent=2)

    def reload_config(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def __repr__(self) -> str:
        """String representation of ConfigManager."""
        return f"ConfigManager(config_path={self.config_path})"
