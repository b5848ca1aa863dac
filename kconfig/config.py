"""
Configuration management for kconfig

Supports configuration from:
1. Default values (code)
2. Config file (~/.kube/kconfig.yaml)
3. Legacy nickname file (~/.kube/kalias.txt)
4. Environment variables (KCONFIG_*)

Configuration precedence (highest to lowest):
ENV vars > Config file > kalias.txt > Defaults

Nicknames from kalias.txt never replace nicknames defined in kconfig.yaml.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError
from .models import Kconfig

logger = structlog.get_logger(__name__)

ENV_PREFIX = "KCONFIG_"
ENV_SECTIONS = ("preferences", "logging")


class Config:
    """Configuration manager for kconfig"""

    # Default configuration
    DEFAULTS = {
        "preferences": {
            "default_kubectl": "kubectl",
            "change_prompt": True,
            "show_overrides_in_prompt": True,
            "always_show_namespace_in_prompt": False,
            "read_kalias_config": False,
            "base_kubeconfig": "",
        },
        "nicknames": {},
        # Logging
        "logging": {
            "enabled": True,
            "level": "INFO",  # DEBUG, INFO, WARNING, ERROR
            "file": None,
            "max_size_mb": 10,
            "backup_count": 3,
        },
    }

    def __init__(
        self,
        home_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize configuration

        Args:
            home_dir: Home directory holding .kube/ (default: the user's home)
            environ: Environment to read overrides from (default: os.environ)
        """
        self.home_dir = Path(home_dir) if home_dir is not None else Path.home()
        self.environ = os.environ if environ is None else environ
        self.config_file = self.home_dir / ".kube" / "kconfig.yaml"
        self.kalias_file = self.home_dir / ".kube" / "kalias.txt"
        self.config = self._load_configuration()
        self.kconfig = self._validate(self.config)

    def _load_configuration(self) -> Dict[str, Any]:
        """Load configuration from all sources

        Returns:
            Merged configuration dictionary

        Raises:
            ConfigurationError: If a config file exists but cannot be read
        """
        config = copy.deepcopy(self.DEFAULTS)

        file_config = self._load_from_file()
        if file_config is None:
            # Without kconfig.yaml, kalias.txt is the only source of nicknames.
            config["preferences"]["read_kalias_config"] = True
        else:
            config = self._deep_merge(config, file_config)

        env_config = self._load_from_env()
        config = self._deep_merge(config, env_config)

        preferences = config.get("preferences")
        if isinstance(preferences, dict) and preferences.get("read_kalias_config"):
            logger.debug("Merging contents of kalias.txt", path=str(self.kalias_file))
            nicknames = config.get("nicknames")
            config["nicknames"] = self._merge_kalias(nicknames if isinstance(nicknames, dict) else {})
        else:
            logger.debug("Skipping merging of contents of kalias.txt")

        return config

    def _load_from_file(self) -> Optional[Dict[str, Any]]:
        """Load configuration from YAML file

        Returns:
            Configuration dictionary or None if file doesn't exist
        """
        if not self.config_file.exists():
            logger.debug("Config file not found", path=str(self.config_file))
            return None

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Error reading kconfig configuration file \"{self.config_file}\": {e}"
            ) from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Error reading kconfig configuration file \"{self.config_file}\": "
                "top level must be a mapping"
            )

        # An empty "preferences:" or "nicknames:" section parses as None.
        config = {key: value for key, value in config.items() if value is not None}

        logger.debug(
            "Loaded configuration from file",
            path=str(self.config_file),
            nicknames=len(config.get("nicknames") or {}),
        )
        return config

    def _merge_kalias(self, nicknames: Dict[str, str]) -> Dict[str, str]:
        """Add nicknames from the legacy kalias.txt file

        Each line has the form ``nickname=definition``; blank lines and lines
        starting with ``#`` are ignored.
        """
        merged = dict(nicknames)

        try:
            with open(self.kalias_file, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            return merged
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"Error reading kalias definitions from \"{self.kalias_file}\": {e}"
            ) from e

        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            nickname, equals, definition = line.partition("=")
            if not equals or not definition:
                continue

            if nickname in merged:
                # Definitions from kconfig.yaml take precedence.
                continue

            merged[nickname] = definition

        return merged

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables

        Environment variables use the format:
        KCONFIG_SECTION_KEY=value

        Example: KCONFIG_PREFERENCES_CHANGE_PROMPT=false

        Returns:
            Configuration dictionary from environment
        """
        config: Dict[str, Any] = {}

        for key, value in self.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")
            if len(parts) < 2:
                continue

            section = parts[0]
            if section not in ENV_SECTIONS:
                continue
            setting = "_".join(parts[1:])

            if self._is_string_setting(section, setting):
                config.setdefault(section, {})[setting] = value
            else:
                config.setdefault(section, {})[setting] = self._parse_env_value(value)

        return config

    def _is_string_setting(self, section: str, setting: str) -> bool:
        """Settings whose default is a string or None are taken verbatim"""
        default = self.DEFAULTS.get(section, {}).get(setting, 0)
        return default is None or isinstance(default, str)

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type

        Returns:
            Parsed value (bool, int, float, or str)
        """
        # Boolean
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # String
        return value

    def _deep_merge(self, base: Dict, overlay: Dict) -> Dict:
        """Deep merge two dictionaries (overlay takes precedence)"""
        result = copy.deepcopy(base)

        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _validate(self, config: Dict[str, Any]) -> Kconfig:
        try:
            return Kconfig(
                preferences=config.get("preferences") or {},
                nicknames=config.get("nicknames"),
            )
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid kconfig configuration in {self._error_source(e)}: {e}"
            ) from e

    def _error_source(self, error: PydanticValidationError) -> str:
        """Name the environment variables or the file behind a validation error"""
        env_vars = []
        for detail in error.errors():
            loc = detail.get("loc", ())
            if len(loc) < 2:
                continue
            env_var = f"{ENV_PREFIX}{loc[0]}_{loc[1]}".upper()
            if env_var in self.environ and env_var not in env_vars:
                env_vars.append(env_var)

        if env_vars:
            return "environment variable(s) " + ", ".join(env_vars)
        return f"\"{self.config_file}\""

    @property
    def preferences(self):
        return self.kconfig.preferences

    @property
    def nicknames(self) -> Dict[str, str]:
        return self.kconfig.nicknames

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with dot notation

        Args:
            key: Configuration key (e.g., "logging.level")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config

        try:
            for k in key.split("."):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default
