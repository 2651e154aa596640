"""
Settings and request file loading.

Settings are layered, later layers winning: built-in defaults, the YAML
settings file, ``ACR_PLATFORM_*`` environment variables, CLI options.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from ..exceptions import ConfigError
from ..models import PromotionRequest, ProvisioningRequest
from .models import PlatformSettings

ModelT = TypeVar("ModelT", bound=BaseModel)


def _read_yaml(path: Path, kind: str) -> Any:
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {kind} file {path}: {e}") from e


def _overlay(base: Mapping[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``layer`` laid over it, section by section."""
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


def _drop_unset(options: Mapping[str, Any]) -> dict[str, Any]:
    # click reports an option that was not given as None
    kept: dict[str, Any] = {}
    for key, value in options.items():
        if isinstance(value, Mapping):
            value = _drop_unset(value)
            if not value:
                continue
        elif value is None:
            continue
        kept[key] = value
    return kept


class ConfigLoader:
    """Reads platform settings from the settings file and the environment."""

    DEFAULT_CONFIG_FILE = Path.home() / ".config" / "acr-platform" / "config.yaml"
    ENV_PREFIX = "ACR_PLATFORM_"
    CONFIG_PATH_ENV = "ACR_CONFIG_PATH"

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            env_path = os.environ.get(self.CONFIG_PATH_ENV)
            config_path = Path(env_path).expanduser() if env_path else self.DEFAULT_CONFIG_FILE
        self.config_path = config_path

    def file_settings(self) -> dict[str, Any]:
        """Settings from the YAML file; a missing or empty file yields none."""
        if not self.config_path.exists():
            return {}
        data = _read_yaml(self.config_path, "config")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {self.config_path}")
        return data

    def env_settings(self) -> dict[str, Any]:
        """Settings from ``ACR_PLATFORM_*`` variables.

        ``__`` separates nested keys, so ``ACR_PLATFORM_BACKEND__MAX_RETRIES``
        sets ``backend.max_retries``. Values are left as strings: the settings
        models coerce scalars and split comma separated lists.
        """
        settings: dict[str, Any] = {}
        for key, value in sorted(os.environ.items()):
            if not key.startswith(self.ENV_PREFIX):
                continue
            *sections, name = key[len(self.ENV_PREFIX) :].lower().split("__")
            target = settings
            for section in sections:
                target = target.setdefault(section, {})
                if not isinstance(target, dict):
                    raise ConfigError(f"{key} nests under a setting that is not a section")
            target[name] = value
        return settings

    def load(self, cli_args: Optional[Mapping[str, Any]] = None) -> PlatformSettings:
        """
        Merge every settings source and validate the result.

        Args:
            cli_args: Options from the command line; ``None`` values are ignored

        Raises:
            ConfigError: If a source is unreadable or the merged settings are invalid
        """
        data = _overlay(self.file_settings(), self.env_settings())
        if cli_args:
            data = _overlay(data, _drop_unset(cli_args))
        try:
            return PlatformSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e}") from e


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[Mapping[str, Any]] = None,
) -> PlatformSettings:
    return ConfigLoader(config_path).load(cli_args)


def _load_document(path: Path, model: type[ModelT], kind: str, description: str) -> ModelT:
    data = _read_yaml(path, kind)
    if not isinstance(data, dict):
        raise ConfigError(f"{kind.capitalize()} file {path} must contain a mapping")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid {description} in {path}: {e}") from e


def load_request(path: Path) -> ProvisioningRequest:
    """
    Load a provisioning request from a YAML file.

    The file holds ``registry``, ``teams``, ``network`` and ``domain_name``
    keys matching ``ProvisioningRequest``.

    Raises:
        ConfigError: If the file is unreadable or does not describe a request
    """
    return _load_document(path, ProvisioningRequest, "request", "provisioning request")


def load_promotion(path: Path) -> PromotionRequest:
    """Load an image promotion request from a YAML file."""
    return _load_document(path, PromotionRequest, "promotion", "promotion request")
