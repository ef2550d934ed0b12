"""
Runtime Configuration

Reads application settings from environment variables, falling back to the
defaults in constants.py.

Variables:
- DATABASE_URL: SQLAlchemy URL (default: SQLite file in the user data dir)
- SQL_ECHO: log emitted SQL ('true'/'1'/'yes')
- LOG_DIR / LOG_LEVEL: rotating log file location and root level
- RANDOM_SEED: seed for the random entity generator (unset = nondeterministic)
- RANDOM_MAX_DEPTH: how deep nested relationships are populated
- RANDOM_COLLECTION_SIZE: "min,max" elements per generated collection
"""
import os
import logging
from pathlib import Path
from typing import Optional, Tuple

from constants import RandomDefaults
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DATA_DIR = Path.home() / ".local/share/CrudFixtures"


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", missing_keys=[name])


def parse_size_range(raw: str, name: str = 'RANDOM_COLLECTION_SIZE') -> Tuple[int, int]:
    """
    Parse a "min,max" (or single "n") size range.

    Raises:
        ConfigurationError: If the value is malformed or min > max
    """
    parts = [p.strip() for p in raw.split(',')]
    try:
        if len(parts) == 1:
            low = high = int(parts[0])
        elif len(parts) == 2:
            low, high = int(parts[0]), int(parts[1])
        else:
            raise ValueError(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must look like 'min,max', got {raw!r}", missing_keys=[name])

    if low < 0 or low > high:
        raise ConfigurationError(f"{name} range is invalid: {raw!r}", missing_keys=[name])
    return low, high


def get_database_url() -> str:
    """Return the configured database URL, creating the default data dir if needed."""
    url = os.environ.get('DATABASE_URL')
    if url:
        return url
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{DATA_DIR / 'app.db'}"


def get_log_dir() -> Path:
    return Path(os.environ.get('LOG_DIR', str(DATA_DIR / 'logs')))


def get_log_level() -> int:
    name = os.environ.get('LOG_LEVEL', 'INFO').upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown LOG_LEVEL: {name}", missing_keys=['LOG_LEVEL'])
    return level


def get_random_seed() -> Optional[int]:
    return _env_int('RANDOM_SEED', None)


def get_random_max_depth() -> int:
    depth = _env_int('RANDOM_MAX_DEPTH', RandomDefaults.MAX_DEPTH)
    if depth < 0:
        raise ConfigurationError("RANDOM_MAX_DEPTH cannot be negative", missing_keys=['RANDOM_MAX_DEPTH'])
    return depth


def get_random_collection_size() -> Tuple[int, int]:
    raw = os.environ.get('RANDOM_COLLECTION_SIZE')
    if not raw:
        return RandomDefaults.COLLECTION_SIZE
    return parse_size_range(raw)


SQL_ECHO = _env_flag('SQL_ECHO')
