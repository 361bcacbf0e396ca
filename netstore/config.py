"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .file.storage import DEFAULT_DOWNLOAD_DIR
from .protocol.stream import DEFAULT_CONNECT_TIMEOUT, DEFAULT_PORT
from .transfer.fragment import DEFAULT_CHUNK_SIZE

ENV_PREFIX = 'NETSTORE_'


@dataclass
class ClientConfig:
    """
    Netstore client configuration.

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (NETSTORE_*)
    3. Config file (JSON)
    4. Default values
    """
    # Network
    host: Optional[str] = None
    port: int = DEFAULT_PORT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    # Storage
    download_dir: Path = field(default_factory=lambda: DEFAULT_DOWNLOAD_DIR)

    # Performance
    chunk_size: int = DEFAULT_CHUNK_SIZE

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'ClientConfig':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # Network
        config.host = os.getenv(f'{ENV_PREFIX}HOST', config.host)
        config.port = int(os.getenv(f'{ENV_PREFIX}PORT', config.port))
        config.connect_timeout = float(
            os.getenv(f'{ENV_PREFIX}CONNECT_TIMEOUT', config.connect_timeout)
        )

        # Storage
        download_dir = os.getenv(f'{ENV_PREFIX}DOWNLOAD_DIR')
        if download_dir:
            config.download_dir = Path(download_dir)

        # Performance
        config.chunk_size = int(os.getenv(f'{ENV_PREFIX}CHUNK_SIZE', config.chunk_size))

        # Logging
        config.log_level = os.getenv(f'{ENV_PREFIX}LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'ClientConfig':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Network
        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)
        config.connect_timeout = data.get('connect_timeout', config.connect_timeout)

        # Storage
        if 'download_dir' in data:
            config.download_dir = Path(data['download_dir'])

        # Performance
        config.chunk_size = data.get('chunk_size', config.chunk_size)

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'connect_timeout': self.connect_timeout,
            'download_dir': str(self.download_dir),
            'chunk_size': self.chunk_size,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> ClientConfig:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = ClientConfig()

    # Load from file if provided
    if config_path and config_path.exists():
        config = ClientConfig.from_file(config_path)

    # Override with environment variables
    env_config = ClientConfig.from_env()

    # Merge (env takes precedence wherever its variable is set, even to a default)
    for key in ['host', 'port', 'connect_timeout', 'download_dir',
                'chunk_size', 'log_level']:
        if os.getenv(f'{ENV_PREFIX}{key.upper()}'):
            setattr(config, key, getattr(env_config, key))

    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "127.0.0.1",
  "port": 6543,
  "connect_timeout": 10.0,
  "download_dir": "./tmp",
  "chunk_size": 512000,
  "log_level": "INFO"
}
"""
