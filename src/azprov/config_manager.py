"""Configuration management module.

This module handles the project configuration file (``azprov.toml``):
where the stack and state files live, which provider to use, concurrency
and timeout settings, and the deployment target for the workflow pipeline.

Security:
- Config file permissions: 0600 (owner read/write only)
- Input validation
"""

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Python 3.11+ ships the same parser as tomllib
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "azprov.toml"
PROVIDERS = ("azure_cli", "simulated")

# Environment variables that override file values
ENV_OVERRIDES = {
    "RESOURCE_GROUP": "resource_group",
    "LOGIC_APP_NAME": "logic_app_name",
}


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class ProvisionerConfig:
    """azprov configuration data."""

    stack_file: str = "stack.yaml"
    state_file: str = ".azprov/state.json"
    provider: str = "azure_cli"
    max_workers: int = 10
    default_timeout: float = 1800.0
    poll_interval: float = 10.0
    resource_timeouts: dict[str, float] = field(default_factory=dict)
    resource_group: str = "rg-logicapp-tf"
    logic_app_name: str | None = None
    workflow_source_dir: str = "logic-app-src"
    package_file: str = "logic-app-package.zip"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # Filter out None values as TOML doesn't support them
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProvisionerConfig":
        """Create from dictionary.

        Raises:
            ConfigError: If a value has the wrong type or range
        """
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        defaults = cls()
        try:
            config = cls(
                stack_file=str(data.get("stack_file", defaults.stack_file)),
                state_file=str(data.get("state_file", defaults.state_file)),
                provider=str(data.get("provider", defaults.provider)),
                max_workers=int(data.get("max_workers", defaults.max_workers)),
                default_timeout=float(data.get("default_timeout", defaults.default_timeout)),
                poll_interval=float(data.get("poll_interval", defaults.poll_interval)),
                resource_timeouts={
                    str(k): float(v) for k, v in dict(data.get("resource_timeouts", {})).items()
                },
                resource_group=str(data.get("resource_group", defaults.resource_group)),
                logic_app_name=data.get("logic_app_name"),
                workflow_source_dir=str(
                    data.get("workflow_source_dir", defaults.workflow_source_dir)
                ),
                package_file=str(data.get("package_file", defaults.package_file)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config value: {e}") from e

        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: If any value is out of range
        """
        if self.provider not in PROVIDERS:
            raise ConfigError(
                f"Unknown provider '{self.provider}' (expected one of {', '.join(PROVIDERS)})"
            )
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.default_timeout <= 0:
            raise ConfigError(f"default_timeout must be positive, got {self.default_timeout}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        for resource_type, timeout in self.resource_timeouts.items():
            if timeout <= 0:
                raise ConfigError(f"Timeout for {resource_type} must be positive, got {timeout}")
        ConfigManager.validate_resource_group_name(self.resource_group)


class ConfigManager:
    """Manage the azprov configuration file.

    Configuration is stored in ``azprov.toml`` in the project directory.
    """

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file

        Raises:
            ConfigError: If a custom path was given and does not exist
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return Path.cwd() / CONFIG_FILE_NAME

    @classmethod
    def load_config(cls, custom_path: str | None = None, apply_env: bool = True) -> ProvisionerConfig:
        """Load configuration from file.

        Args:
            custom_path: Custom config file path (optional)
            apply_env: Apply RESOURCE_GROUP / LOGIC_APP_NAME overrides

        Returns:
            ProvisionerConfig object (defaults when no file exists)

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            config = ProvisionerConfig()
        else:
            try:
                # Verify file permissions
                mode = config_path.stat().st_mode & 0o777
                if mode & 0o077:
                    logger.warning(
                        f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                    )
                    os.chmod(config_path, 0o600)

                with open(config_path, "rb") as f:
                    data = tomli.load(f)  # type: ignore[attr-defined]
            except (OSError, tomli.TOMLDecodeError) as e:
                raise ConfigError(f"Failed to load config: {e}") from e

            config = ProvisionerConfig.from_dict(data)
            logger.debug(f"Loaded config from: {config_path}")

        if apply_env:
            cls.apply_env_overrides(config)
        return config

    @classmethod
    def apply_env_overrides(cls, config: ProvisionerConfig) -> ProvisionerConfig:
        for env_var, attribute in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                logger.debug(f"{attribute} overridden by ${env_var}")
                setattr(config, attribute, value)
        return config

    @classmethod
    def save_config(cls, config: ProvisionerConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If saving fails
        """
        config_path = (
            Path(custom_path).expanduser().resolve()
            if custom_path
            else Path.cwd() / CONFIG_FILE_NAME
        )
        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            # Load existing file if it exists (preserves comments/formatting)
            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()
                doc.add(tomlkit.comment("azprov project configuration"))

            # Tables must follow plain keys in TOML
            items = sorted(config.to_dict().items(), key=lambda item: isinstance(item[1], dict))
            for key, value in items:
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            # Set secure permissions before moving
            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def validate_resource_group_name(cls, name: str) -> bool:
        """Validate resource group name format.

        Azure resource group naming rules:
        - 1-90 characters
        - Alphanumeric, underscore, hyphen, period, parentheses
        - Cannot end with period

        Raises:
            ConfigError: If name is invalid
        """
        if not name:
            raise ConfigError("Resource group name cannot be empty")

        if len(name) > 90:
            raise ConfigError(f"Resource group name too long: {len(name)} characters (max 90)")

        if not re.match(r"^[a-zA-Z0-9_\-\.\(\)]+$", name):
            raise ConfigError(
                f"Invalid resource group name: {name}\n"
                "Resource group names must contain only letters, numbers, "
                "underscores, hyphens, periods and parentheses"
            )

        if name.endswith("."):
            raise ConfigError("Resource group name cannot end with a period")

        return True
