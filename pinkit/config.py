"""
Configuration management for pinkit.

Provides a hierarchical configuration system with sensible defaults.
Supports both global (~/.config/pinkit/config.toml) and local (pinkit.toml)
configurations, overridden by PINKIT_* environment variables.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields, asdict

from pinkit.constants import DEFAULT_BASE_URL, DEFAULT_CACHE_DIR, DEFAULT_REQUEST_TIMEOUT
from pinkit.errors import ConfigError


@dataclass
class PinkitConfig:
    """
    pinkit configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (PINKIT_*)
    3. Explicit config file (--config)
    4. Local config file (./pinkit.toml or ./.pinkitrc)
    5. User config file (~/.config/pinkit/config.toml)
    6. System defaults
    """

    # Remote service
    api_token: Optional[str] = field(default=None)  # "user:TOKEN"
    base_url: str = field(default=DEFAULT_BASE_URL)

    # Network settings
    timeout: int = field(default=DEFAULT_REQUEST_TIMEOUT)  # Request timeout in seconds
    user_agent: Optional[str] = field(default=None)

    # Local snapshot
    cache_dir: str = field(default=DEFAULT_CACHE_DIR)

    # Search
    fuzzy_search: bool = field(default=False)
    tag_only_search: bool = field(default=False)

    # Display settings
    output_format: str = field(default="table")  # table, json, urls

    log_level: str = field(default="WARNING")

    def __post_init__(self):
        # Values that belong in the user config file: what it already held plus
        # anything changed through set(). Environment and command-line overrides
        # stay out.
        self._saved: Dict[str, Any] = {}

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "PinkitConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "pinkit" / "config.toml"
        if user_config_path.exists():
            data = cls._load_toml(user_config_path)
            config._merge(data)
            config._saved.update({k: v for k, v in data.items() if k in cls._field_names()})

        local_paths = [
            Path.cwd() / "pinkit.toml",
            Path.cwd() / ".pinkitrc",
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file is not None:
            if not config_file.exists():
                raise ConfigError(f"config file not found: {config_file}")
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @classmethod
    def _field_names(cls):
        return {f.name for f in fields(cls)}

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        try:
            with open(path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"invalid config file {path}: {e}") from e

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        names = self._field_names()
        for key, value in data.items():
            if key in names:
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with PINKIT_ prefix."""
        prefix = "PINKIT_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if config_key in self._field_names():
                    self._assign(config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in paths."""
        self.cache_dir = os.path.expanduser(os.path.expandvars(self.cache_dir))

    def set(self, key: str, value: str):
        """
        Set a field from its string form, converting to the field's type.

        The new value is included in the next save().

        Raises:
            ConfigError: If the key is unknown or the value does not convert
        """
        self._assign(key, value)
        self._saved[key] = getattr(self, key)

    def _assign(self, key: str, value: str):
        if key not in self._field_names():
            raise ConfigError(f"unknown config key: {key}")
        current_value = getattr(self, key)
        if isinstance(current_value, bool):
            setattr(self, key, value.lower() in ("true", "1", "yes"))
        elif isinstance(current_value, int):
            try:
                setattr(self, key, int(value))
            except ValueError as e:
                raise ConfigError(f"{key} must be an integer, got {value!r}") from e
        else:
            setattr(self, key, value)

    def save(self, path: Optional[Path] = None, include_defaults: bool = False):
        """
        Save configuration to a TOML file.

        Only values read from the user config file or changed with set() are
        written, so tokens taken from the environment never reach the disk.

        Args:
            path: Path to save to (defaults to user config)
            include_defaults: Write every field with its current value
        """
        if path is None:
            path = Path.home() / ".config" / "pinkit" / "config.toml"

        path.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null; unset optional values are left out
        values = asdict(self) if include_defaults else self._saved
        data = {k: v for k, v in values.items() if v is not None}
        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def set_cache_dir(self, path) -> Path:
        """Point the snapshot at another directory."""
        self.cache_dir = os.path.expanduser(os.path.expandvars(str(path)))
        return self.cache_path()

    def cache_path(self) -> Path:
        """Get the resolved cache directory."""
        path = Path(self.cache_dir).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def require_token(self) -> str:
        """
        Get the API token.

        Raises:
            ConfigError: If no token is configured
        """
        if not self.api_token:
            raise ConfigError("no API token configured; set PINKIT_API_TOKEN or api_token in config.toml")
        return self.api_token


# Global configuration instance
_config: Optional[PinkitConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> PinkitConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = PinkitConfig.load(config_file)
    return _config


def init_config(config_file: Optional[Path] = None, **kwargs) -> PinkitConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        config_file: Config file to load instead of the default search
        **kwargs: Other configuration overrides (None values are ignored)

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    config._expand_paths()
    return config
