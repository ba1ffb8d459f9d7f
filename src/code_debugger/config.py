"""
Configuration schema using Pydantic.

Configuration is loaded from a YAML file, with environment variables
overriding individual values.
"""

import os
from pathlib import Path
from typing import Optional, List, Dict, Any

import yaml
from pydantic import BaseModel, Field, model_validator

from code_debugger.personas import Persona


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required values."""

    def __init__(self, message: str, field: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.field = field
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message]
        if self.field:
            lines.append(f"  Field: {self.field}")
        if self.suggestions:
            lines.append("  Suggestions:")
            for s in self.suggestions:
                lines.append(f"    - {s}")
        return "\n".join(lines)


class ServiceConfig(BaseModel):
    """Remote execution/repair service endpoint."""

    base_url: str = Field(default="http://localhost:8000", description="Service root URL")
    run_path: str = Field(default="/run")
    repair_path: str = Field(default="/repair")
    # None means no timeout: a hung service keeps the ticker running
    timeout_seconds: Optional[float] = Field(default=None, gt=0, le=3600)


class TimingConfig(BaseModel):
    """Progress ticker and auto-run timing."""

    ticker_interval_ms: int = Field(default=3500, ge=10, le=60000, description="Delay between progress messages")
    auto_run_delay_ms: int = Field(default=1500, ge=0, le=60000, description="Delay before running repaired code")
    auto_run_enabled: bool = Field(default=True)

    @property
    def ticker_interval_seconds(self) -> float:
        return self.ticker_interval_ms / 1000

    @property
    def auto_run_delay_seconds(self) -> float:
        return self.auto_run_delay_ms / 1000


class SessionConfig(BaseModel):
    """Session behaviour configuration."""

    default_persona: Persona = Field(default=Persona.HACKER)
    stale_responses: str = Field(
        default="apply",
        pattern="^(apply|discard)$",
        description="apply: last completed call wins; discard: drop responses superseded by a newer call",
    )


class DebuggerConfig(BaseModel):
    """Root configuration for the code debugger."""

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @property
    def run_url(self) -> str:
        return self.service.base_url.rstrip("/") + self.service.run_path

    @property
    def repair_url(self) -> str:
        return self.service.base_url.rstrip("/") + self.service.repair_path

    @model_validator(mode='after')
    def validate_consistency(self) -> 'DebuggerConfig':
        """Validate cross-field consistency."""
        if not self.service.base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"service.base_url must be an http(s) URL, got {self.service.base_url!r}"
            )

        for name in ("run_path", "repair_path"):
            if not getattr(self.service, name).startswith("/"):
                raise ValueError(f"service.{name} must start with '/'")

        return self


def get_default_config_path() -> Path:
    """Get default config file path."""
    return Path.home() / ".code-debugger" / "config.yaml"


def load_config(config_path: Optional[str] = None) -> DebuggerConfig:
    """
    Load configuration from YAML file.

    Falls back to defaults if the default file doesn't exist.
    Environment variables override config file values.

    Args:
        config_path: Path to config file (optional)

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If config file is missing or invalid
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Config file not found: {path}",
                suggestions=[
                    f"Create the config file at {path}",
                    "Or run without --config to use defaults",
                ]
            )
    else:
        path = get_default_config_path()

    data: Dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            raise ConfigurationError(
                f"Invalid YAML in config file: {path}",
                suggestions=[
                    f"Check syntax at line {mark.line + 1 if mark else 'unknown'}",
                    "Use a YAML validator to check your config",
                ]
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {path}",
                suggestions=["Top-level keys are: service, timing, session"],
            )

    env_overrides = _get_env_overrides()
    data = _deep_merge(data, env_overrides)

    try:
        config = DebuggerConfig(**data)
    except Exception as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            suggestions=[
                "Check field names and values in your config",
                "Run 'code-debugger config --show' to see the effective values",
            ]
        ) from e

    return config


def _get_env_overrides() -> Dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: Dict[str, Any] = {}

    env_mappings = {
        "CODE_DEBUGGER_SERVICE_URL": ("service", "base_url"),
        "CODE_DEBUGGER_TIMEOUT": ("service", "timeout_seconds"),
        "CODE_DEBUGGER_TICKER_INTERVAL_MS": ("timing", "ticker_interval_ms"),
        "CODE_DEBUGGER_AUTO_RUN_DELAY_MS": ("timing", "auto_run_delay_ms"),
        "CODE_DEBUGGER_PERSONA": ("session", "default_persona"),
        "CODE_DEBUGGER_STALE_RESPONSES": ("session", "stale_responses"),
    }

    for env_key, (section, field) in env_mappings.items():
        value = os.environ.get(env_key)
        if value:
            if section not in overrides:
                overrides[section] = {}
            if value.isdigit():
                value = int(value)
            overrides[section][field] = value

    return overrides


def _deep_merge(base: Dict, overlay: Dict) -> Dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def save_config(config: DebuggerConfig, config_path: Optional[str] = None) -> None:
    """Save configuration to YAML file."""
    if config_path:
        path = Path(config_path)
    else:
        path = get_default_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(config.model_dump(mode="json"), f, default_flow_style=False)
