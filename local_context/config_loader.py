"""Configuration loading and validation for local context.

Settings are layered, lowest priority first:
1. Built-in defaults
2. JSON config file (explicit path, LOCAL_CONTEXT_CONFIG_PATH, workspace
   .local-context.json, or ~/.config/local-context/config.json)
3. LOCAL_CONTEXT_* variables from the workspace .env file
4. LOCAL_CONTEXT_* variables from the process environment
5. runtime_config dict passed by the caller
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import dotenv_values

from .errors import ConfigValidationError

logger = logging.getLogger(__name__)


# Binary and media files never offered by project enumeration.
DEFAULT_DENIED_EXTENSIONS: Tuple[str, ...] = (
    "png", "jpg", "jpeg", "gif", "bmp", "tiff", "ico", "svg", "pdf",
    "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "zip", "tar", "gz", "rar", "7z",
    "exe", "dll", "so", "dylib",
    "pyc", "pyo", "pyd", "class", "jar",
    "mp3", "mp4", "avi", "mov", "wav",
)

DEFAULT_PROPERTY_NAME = "LOCAL_CONTEXT"
DEFAULT_LOCAL_VARIABLE_NAME = "local-context"

CONFIG_FILENAME = ".local-context.json"
ENV_PREFIX = "LOCAL_CONTEXT_"

# Env var suffix -> config field
_ENV_FIELDS = {
    "DENIED_EXTENSIONS": "denied_extensions",
    "LANGUAGE_HINTS": "language_hints",
    "MAX_FILE_BYTES": "max_file_bytes",
    "PROPERTY_NAME": "property_name",
    "LOCAL_VARIABLE_NAME": "local_variable_name",
    "USE_GIT_INDEX": "use_git_index",
}

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class LocalContextConfig:
    """Structured local context settings.

    Attributes:
        denied_extensions: Suffixes (without dot) dropped by project enumeration.
        language_hints: Add a language tag to fenced file and buffer blocks.
        max_file_bytes: Skip files larger than this during resolution (None = no limit).
        property_name: Outline property holding saved references.
        local_variable_name: Trailing local variable holding saved references.
        use_git_index: Use ``git ls-files`` for git projects instead of walking.
        config_path: File the settings were loaded from, if any.
    """

    denied_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_DENIED_EXTENSIONS)
    )
    language_hints: bool = True
    max_file_bytes: Optional[int] = None
    property_name: str = DEFAULT_PROPERTY_NAME
    local_variable_name: str = DEFAULT_LOCAL_VARIABLE_NAME
    use_git_index: bool = True

    config_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "denied_extensions": list(self.denied_extensions),
            "language_hints": self.language_hints,
            "max_file_bytes": self.max_file_bytes,
            "property_name": self.property_name,
            "local_variable_name": self.local_variable_name,
            "use_git_index": self.use_git_index,
        }


def validate_config(config: Mapping[str, Any]) -> Tuple[bool, List[str]]:
    """Validate a raw configuration dict.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors: List[str] = []
    known = {f.name for f in fields(LocalContextConfig)} - {"config_path"}

    for key in config:
        if key not in known:
            errors.append(f"Unknown setting '{key}'")

    denied = config.get("denied_extensions")
    if denied is not None:
        if not isinstance(denied, list) or not all(isinstance(e, str) for e in denied):
            errors.append("'denied_extensions' must be an array of strings")
        elif any(e.startswith(".") or not e for e in denied):
            errors.append("'denied_extensions' entries must be non-empty and have no leading dot")

    for flag in ("language_hints", "use_git_index"):
        value = config.get(flag)
        if value is not None and not isinstance(value, bool):
            errors.append(f"'{flag}' must be a boolean")

    max_bytes = config.get("max_file_bytes")
    if max_bytes is not None and (
        isinstance(max_bytes, bool) or not isinstance(max_bytes, int) or max_bytes <= 0
    ):
        errors.append("'max_file_bytes' must be a positive integer")

    for name_field in ("property_name", "local_variable_name"):
        value = config.get(name_field)
        if value is not None and (not isinstance(value, str) or not value.strip()
                                  or any(c.isspace() for c in value)):
            errors.append(f"'{name_field}' must be a non-empty string without whitespace")

    return len(errors) == 0, errors


def _parse_env_value(name: str, raw: str) -> Any:
    """Convert a LOCAL_CONTEXT_* string into the type the field expects."""
    if name in ("language_hints", "use_git_index"):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        return raw  # left for validate_config to reject
    if name == "max_file_bytes":
        raw = raw.strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            return raw
    if name == "denied_extensions":
        return [e.strip().lstrip(".") for e in raw.split(",") if e.strip()]
    return raw.strip()


def _env_overrides(env: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for suffix, name in _ENV_FIELDS.items():
        raw = env.get(ENV_PREFIX + suffix)
        if raw is not None:
            overrides[name] = _parse_env_value(name, raw)
    return overrides


def _default_paths(workspace_path: Optional[str]) -> List[Path]:
    paths: List[Path] = []
    if workspace_path:
        paths.append(Path(workspace_path) / CONFIG_FILENAME)
    paths.append(Path.home() / ".config" / "local-context" / "config.json")
    return paths


def load_config(
    path: Optional[str] = None,
    env_var: str = "LOCAL_CONTEXT_CONFIG_PATH",
    workspace_path: Optional[str] = None,
    runtime_config: Optional[Dict[str, Any]] = None,
) -> LocalContextConfig:
    """Load and validate local context settings.

    Args:
        path: Direct path to a JSON config file. If None, uses env_var or defaults.
        env_var: Environment variable naming the config file.
        workspace_path: Workspace root, searched for .local-context.json and .env.
        runtime_config: Highest-priority overrides from the caller.

    Returns:
        LocalContextConfig with every layer applied.

    Raises:
        FileNotFoundError: If an explicitly named config file doesn't exist.
        ConfigValidationError: If any layer holds invalid settings.
        json.JSONDecodeError: If the config file is not valid JSON.
    """
    explicit = path is not None
    if path is None:
        path = os.environ.get(env_var)
        explicit = path is not None

    if path is None:
        for default_path in _default_paths(workspace_path):
            if default_path.is_file():
                path = str(default_path)
                break

    merged: Dict[str, Any] = {}
    config_path: Optional[str] = None

    if path is not None:
        file_path = Path(path)
        if not file_path.exists():
            if explicit:
                raise FileNotFoundError(f"Local context config file not found: {path}")
        else:
            with open(file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ConfigValidationError(["Config file must contain a JSON object"])
            merged.update(raw)
            config_path = str(file_path.resolve())
            logger.debug("Loaded local context config from %s", config_path)

    if workspace_path:
        env_file = Path(workspace_path) / ".env"
        if env_file.is_file():
            merged.update(_env_overrides(dotenv_values(env_file)))

    merged.update(_env_overrides(os.environ))

    if runtime_config:
        merged.update(runtime_config)

    is_valid, errors = validate_config(merged)
    if not is_valid:
        raise ConfigValidationError(errors)

    config = LocalContextConfig(**merged)
    config.config_path = config_path
    return config


def create_default_config(path: str) -> None:
    """Write a config file holding the default settings."""
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(LocalContextConfig().to_dict(), f, indent=2)
