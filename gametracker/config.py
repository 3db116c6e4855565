"""Configuration loading: defaults, then a JSON file, then the environment."""
import json
import logging
import os
from typing import Dict, Optional

from .errors import ConfigError

logger = logging.getLogger('gametracker.config')

DEFAULT_CONFIG_PATH = 'gametracker.json'

BACKENDS = ('json', 'mongo')

DEFAULTS = {
    'backend': 'json',
    'data_dir': '.gametracker',
    'mongo_uri': 'mongodb://localhost:27017',
    'database': 'gametracker',
    'games_collection': 'games',
    'users_collection': 'users',
    'log_level': 'WARNING',
}

# Environment variable -> config key.  Environment wins over the file.
ENV_OVERRIDES = {
    'GAMETRACKER_BACKEND': 'backend',
    'GAMETRACKER_DATA_DIR': 'data_dir',
    'MONGO_URI': 'mongo_uri',
    'MONGO_DATABASE': 'database',
    'GAMETRACKER_LOG_LEVEL': 'log_level',
}


def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration with environment variable support.

    A missing file is not an error; the defaults apply.  Environment
    variables take precedence over config file values:

    - GAMETRACKER_BACKEND overrides backend (``json`` or ``mongo``)
    - GAMETRACKER_DATA_DIR overrides data_dir
    - MONGO_URI overrides mongo_uri
    - MONGO_DATABASE overrides database
    - GAMETRACKER_LOG_LEVEL overrides log_level

    Raises:
        ConfigError: the file is not a JSON object or the backend is unknown.
    """
    config = dict(DEFAULTS)
    path = config_path or DEFAULT_CONFIG_PATH

    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                loaded = json.load(f)
        except (IOError, json.JSONDecodeError) as e:
            raise ConfigError(f"Error parsing config file '{path}': {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file '{path}' must contain a JSON object")
        config.update(loaded)
    elif config_path:
        logger.warning("Config file '%s' not found, using defaults", path)

    for env_name, key in ENV_OVERRIDES.items():
        if os.getenv(env_name):
            config[key] = os.getenv(env_name)

    if config['backend'] not in BACKENDS:
        raise ConfigError(
            f"Unknown backend '{config['backend']}' (expected one of: {', '.join(BACKENDS)})")
    return config
