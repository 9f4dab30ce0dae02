"""
Configuration Management for StateKit

🔧 Unified Configuration System:
Dataclass-based configuration with per-environment defaults, dictionary
and environment-variable overrides, and a process-wide current config.
"""

import logging
import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "statekit"

# Handler installed by the last configure_logging call
_installed_handler: Optional[logging.Handler] = None


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class ComputeConfig:
    """Where compute_and_update_state runs its work"""
    executor: str = "thread"  # "thread" or "process"
    max_workers: Optional[int] = None

    def create_executor(self) -> Executor:
        if self.executor == "thread":
            return ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="statekit-compute")
        if self.executor == "process":
            return ProcessPoolExecutor(max_workers=self.max_workers)
        raise ValueError(f"Unknown compute executor: {self.executor}")


@dataclass
class StateKitConfig:
    """Complete StateKit configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_interceptor: bool = False

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    compute: ComputeConfig = field(default_factory=ComputeConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'StateKitConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.debug = True
            config.log_interceptor = True
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.logging.level = "INFO"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'StateKitConfig':
        """Create configuration from dictionary"""
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        config = cls.for_environment(environment)

        if "debug" in config_dict:
            config.debug = bool(config_dict["debug"])

        if "log_interceptor" in config_dict:
            config.log_interceptor = bool(config_dict["log_interceptor"])

        for section in ("logging", "compute"):
            for key, value in config_dict.get(section, {}).items():
                target = getattr(config, section)
                if hasattr(target, key):
                    setattr(target, key, value)

        return config

    @classmethod
    def from_environment(cls) -> 'StateKitConfig':
        """Create configuration from environment variables"""
        environment = Environment(os.getenv('STATEKIT_ENV', 'development'))
        config = cls.for_environment(environment)

        if os.getenv('STATEKIT_DEBUG'):
            config.debug = os.getenv('STATEKIT_DEBUG').lower() == 'true'
            config.log_interceptor = config.debug

        if os.getenv('STATEKIT_LOG_LEVEL'):
            config.logging.level = os.getenv('STATEKIT_LOG_LEVEL').upper()

        if os.getenv('STATEKIT_LOG_FILE'):
            config.logging.file_path = os.getenv('STATEKIT_LOG_FILE')

        if os.getenv('STATEKIT_COMPUTE_EXECUTOR'):
            config.compute.executor = os.getenv('STATEKIT_COMPUTE_EXECUTOR')

        if os.getenv('STATEKIT_COMPUTE_WORKERS'):
            config.compute.max_workers = int(os.getenv('STATEKIT_COMPUTE_WORKERS'))

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "debug": self.debug,
            "log_interceptor": self.log_interceptor,
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file_path": self.logging.file_path,
                "max_file_size": self.logging.max_file_size,
                "backup_count": self.logging.backup_count
            },
            "compute": {
                "executor": self.compute.executor,
                "max_workers": self.compute.max_workers
            }
        }


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Attach a handler to the package logger according to `config`."""
    global _installed_handler
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(config.level.upper())

    if config.file_path:
        handler: logging.Handler = RotatingFileHandler(
            config.file_path, maxBytes=config.max_file_size, backupCount=config.backup_count
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.format))

    if _installed_handler is not None:
        package_logger.removeHandler(_installed_handler)
        _installed_handler.close()
    _installed_handler = handler
    package_logger.addHandler(handler)
    return package_logger


# Global configuration management
_current_config: Optional[StateKitConfig] = None


def set_config(config: StateKitConfig):
    """Set the global configuration"""
    global _current_config
    _current_config = config


def get_config() -> StateKitConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = StateKitConfig.from_environment()

    return _current_config


__all__ = [
    "StateKitConfig", "Environment", "LoggingConfig", "ComputeConfig",
    "configure_logging", "set_config", "get_config",
]
