"""
Configuration for acclink.

Supports loading from YAML files, environment variables, and defaults.
Environment variables take precedence over the YAML file. Nothing in the
channel core reads this module implicitly; Channel.open() always takes an
explicit endpoint, and Channel.from_config() is the opt-in bridge.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
import logging
import logging.handlers
import os
from typing import Optional, Dict, Any
import yaml

from .core.exceptions import ConfigurationError

LOGGER_NAME = "acclink"


class LogLevel(Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class ChannelConfig:
    """Accelerator manager endpoint and channel options."""
    host: str = "127.0.0.1"
    port: int = 1027

    # None means block indefinitely
    connect_timeout: Optional[float] = None
    read_timeout: Optional[float] = None

    # None means no limit beyond the 4-byte prefix
    max_frame_size: Optional[int] = None

    def from_env(self) -> 'ChannelConfig':
        """Return a copy with ACCLINK_* environment overrides applied."""
        try:
            return ChannelConfig(
                host=os.getenv('ACCLINK_HOST', self.host),
                port=_env_int('ACCLINK_PORT', self.port),
                connect_timeout=_env_float('ACCLINK_CONNECT_TIMEOUT', self.connect_timeout),
                read_timeout=_env_float('ACCLINK_READ_TIMEOUT', self.read_timeout),
                max_frame_size=_env_int('ACCLINK_MAX_FRAME_SIZE', self.max_frame_size),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid channel environment setting: {e}") from e


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5

    def __post_init__(self):
        if not isinstance(self.level, LogLevel):
            try:
                self.level = LogLevel(str(self.level).lower())
            except ValueError as e:
                raise ConfigurationError(f"Unknown log level {self.level!r}") from e

    def from_env(self) -> 'LoggingConfig':
        """Return a copy with ACCLINK_LOG_* environment overrides applied."""
        try:
            return LoggingConfig(
                level=os.getenv('ACCLINK_LOG_LEVEL', self.level.value),
                format=os.getenv('ACCLINK_LOG_FORMAT', self.format),
                file_path=os.getenv('ACCLINK_LOG_FILE', self.file_path),
                max_file_size_mb=_env_int('ACCLINK_LOG_MAX_SIZE_MB', self.max_file_size_mb),
                backup_count=_env_int('ACCLINK_LOG_BACKUP_COUNT', self.backup_count),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid logging environment setting: {e}") from e

    def apply(self) -> logging.Logger:
        """Install a handler on the acclink logger and return it."""
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(self.level.value.upper())

        if self.file_path:
            handler = logging.handlers.RotatingFileHandler(
                self.file_path,
                maxBytes=self.max_file_size_mb * 1024 * 1024,
                backupCount=self.backup_count,
            )
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(self.format))

        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        logger.addHandler(handler)
        logger.propagate = False
        return logger


@dataclass
class AccLinkConfig:
    """Main configuration class for acclink."""
    channel: ChannelConfig = field(default_factory=ChannelConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'AccLinkConfig':
        """
        Load configuration from YAML file and/or environment variables.

        Args:
            path: Path to YAML config file (optional)

        Returns:
            AccLinkConfig instance with loaded settings
        """
        config = cls()

        if path and os.path.exists(path):
            try:
                with open(path, 'r') as f:
                    yaml_data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Failed to load config: {e}", context={'path': path}
                ) from e

            if yaml_data:
                config = cls._from_dict(yaml_data)
            config.config_file = path

        config.channel = config.channel.from_env()
        config.logging = config.logging.from_env()
        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> 'AccLinkConfig':
        """Create config from dictionary (YAML data)."""
        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        unknown = set(data) - {'channel', 'logging'}
        if unknown:
            raise ConfigurationError(f"Unknown config sections: {', '.join(sorted(unknown))}")

        return cls(
            channel=_section(ChannelConfig, data.get('channel') or {}),
            logging=_section(LoggingConfig, data.get('logging') or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            'channel': {
                'host': self.channel.host,
                'port': self.channel.port,
                'connect_timeout': self.channel.connect_timeout,
                'read_timeout': self.channel.read_timeout,
                'max_frame_size': self.channel.max_frame_size,
            },
            'logging': {
                'level': self.logging.level.value,
                'format': self.logging.format,
                'file_path': self.logging.file_path,
                'max_file_size_mb': self.logging.max_file_size_mb,
                'backup_count': self.logging.backup_count,
            },
        }

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _section(section_cls, values: Dict[str, Any]):
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {section_cls.__name__} keys: {', '.join(sorted(unknown))}"
        )
    return section_cls(**values)


# Global configuration instance
_config: Optional[AccLinkConfig] = None


def get_config() -> AccLinkConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AccLinkConfig.load(os.getenv('ACCLINK_CONFIG'))
    return _config


def set_config(config: Optional[AccLinkConfig]) -> None:
    """Set the global configuration instance (None forces a reload)."""
    global _config
    _config = config


def load_config(path: Optional[str] = None) -> AccLinkConfig:
    """Load configuration from file and/or environment."""
    return AccLinkConfig.load(path)
