"""
Bracket engine settings, read from YAML with environment overrides.
"""
import logging
import os

import yaml

from .errors import ConfigError, InvalidSeedingMethod
from .models import SeedingMethod

logger = logging.getLogger(__name__)

SETTINGS_FILE_ENV = 'BRACKET_SETTINGS_FILE'
STORAGE_BACKENDS = ('memory', 'yaml')

DEFAULT_SETTINGS = {
    'storage': 'memory',
    'data_dir': os.path.join(os.getcwd(), 'data'),
    'lock_timeout': 10,
    'default_seeding_method': 'RANDOM',
    'default_ranking_points': 1000,
    'third_place_match': True,
    'random_seed': None,
}

ENV_OVERRIDES = {
    'BRACKET_DATA_DIR': 'data_dir',
    'BRACKET_LOCK_TIMEOUT': 'lock_timeout',
    'BRACKET_STORAGE': 'storage',
}


class BracketSettings:
    def __init__(self, storage='memory', data_dir=None, lock_timeout=10,
                 default_seeding_method='RANDOM', default_ranking_points=1000,
                 third_place_match=True, random_seed=None):
        if storage not in STORAGE_BACKENDS:
            raise ConfigError(f"storage must be one of {STORAGE_BACKENDS}, got {storage!r}")
        try:
            lock_timeout = float(lock_timeout)
            default_ranking_points = float(default_ranking_points)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from None
        if lock_timeout <= 0:
            raise ConfigError(f"lock_timeout must be positive, got {lock_timeout}")
        try:
            default_seeding_method = SeedingMethod.parse(default_seeding_method)
        except InvalidSeedingMethod as e:
            raise ConfigError(str(e)) from None
        if random_seed is not None and not isinstance(random_seed, int):
            raise ConfigError(f"random_seed must be an integer, got {random_seed!r}")

        self.storage = storage
        self.data_dir = data_dir if data_dir else DEFAULT_SETTINGS['data_dir']
        self.lock_timeout = lock_timeout
        self.default_seeding_method = default_seeding_method
        self.default_ranking_points = default_ranking_points
        self.third_place_match = bool(third_place_match)
        self.random_seed = random_seed

    @property
    def lock_dir(self):
        return os.path.join(self.data_dir, 'locks')

    def __repr__(self):
        return (f"BracketSettings(storage={self.storage}, data_dir={self.data_dir}, "
                f"lock_timeout={self.lock_timeout})")


def load_settings(path=None) -> BracketSettings:
    """
    Load settings from a YAML file (argument, else $BRACKET_SETTINGS_FILE),
    then apply environment overrides. Missing file or keys fall back to
    defaults.
    """
    values = dict(DEFAULT_SETTINGS)
    path = path or os.environ.get(SETTINGS_FILE_ENV)

    if path:
        if not os.path.exists(path):
            raise ConfigError(f"Settings file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from None
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping of settings")
        for key, value in data.items():
            if key not in DEFAULT_SETTINGS:
                logger.warning(f"Ignoring unknown setting '{key}' in {path}")
                continue
            values[key] = value

    for env_key, setting in ENV_OVERRIDES.items():
        if os.environ.get(env_key):
            values[setting] = os.environ[env_key]

    settings = BracketSettings(**values)
    logger.info(f"Loaded {settings}")
    return settings
