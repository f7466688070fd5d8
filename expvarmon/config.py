"""
Expvar Monitor - Configuration

Loads settings from command-line overrides, environment variables, an
optional ``.env`` file and a YAML config file, in that order of precedence.
The resulting Settings value is immutable and passed explicitly to the
components that need it.
"""

import math
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple, Type

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from expvarmon.errors import ConfigurationError

DEFAULT_VARS = (
    "mem:memstats.Alloc,mem:memstats.Sys,mem:memstats.HeapAlloc,mem:memstats.HeapInuse,"
    "duration:memstats.PauseTotalNs,counter:memstats.NumGC"
)

DEFAULT_CONFIG_FILES = [
    str(Path("~/.expvarmon/config.yaml").expanduser()),
    "config.yaml",
]

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """Parse seconds given as a number or a Go-style duration such as ``1h30m``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise ValueError(f"invalid duration {value!r}")
        return float(value)

    text = str(value).strip()
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration {value!r} (examples: 5s, 1m, 1h30m)")
        return seconds

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_SECONDS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration {value!r} (examples: 5s, 1m, 1h30m)")
    return total


class Settings(BaseSettings):
    """Monitor settings loaded from flags, environment and config file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        yaml_file=DEFAULT_CONFIG_FILES,
    )

    # Polling
    interval: float = Field(default=5.0, alias="EXPVARMON_INTERVAL")
    fetch_timeout: float = Field(default=3.0, alias="EXPVARMON_FETCH_TIMEOUT")
    history_size: int = Field(default=120, alias="EXPVARMON_HISTORY_SIZE")

    # Targets and variables
    ports: str = Field(default="", alias="EXPVARMON_PORTS")
    vars: str = Field(default=DEFAULT_VARS, alias="EXPVARMON_VARS")
    endpoint: str = Field(default="/debug/vars", alias="EXPVARMON_ENDPOINT")

    # Output
    dummy: bool = Field(default=False, alias="EXPVARMON_DUMMY")
    self_monitor: bool = Field(default=False, alias="EXPVARMON_SELF")
    debug: bool = Field(default=False, alias="EXPVARMON_DEBUG")

    @field_validator("interval", "fetch_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> float:
        return parse_duration(value)

    @field_validator("interval", "fetch_timeout")
    @classmethod
    def _positive(cls, value: float) -> float:
        if not value > 0:
            raise ValueError("must be positive (examples: 5s, 1m, 1h30m)")
        return value

    @field_validator("history_size")
    @classmethod
    def _positive_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("ports", "vars", mode="before")
    @classmethod
    def _join_list(cls, value: Any) -> Any:
        # YAML files may list ports and vars instead of comma-joining them
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        return value

    @field_validator("endpoint")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            return "/" + value
        return value

    @property
    def ports_list(self) -> List[str]:
        """Parse ports from comma-separated string."""
        if not self.ports:
            return []
        return [p.strip() for p in self.ports.split(",") if p.strip()]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(config_file: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Build the immutable settings value.

    ``overrides`` come from the command line; None values are ignored so
    unset flags fall through to environment, config file and defaults.
    """
    settings_cls: Type[Settings] = Settings
    if config_file:
        path = Path(config_file).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {config_file}")
        settings_cls = type(
            "FileSettings",
            (Settings,),
            {"__module__": __name__, "model_config": SettingsConfigDict(yaml_file=str(path))},
        )

    # Pass overrides under their aliases so they rank above environment values
    values = {}
    for name, value in overrides.items():
        if value is None:
            continue
        field = Settings.model_fields.get(name)
        values[field.alias if field and field.alias else name] = value

    try:
        return settings_cls(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
