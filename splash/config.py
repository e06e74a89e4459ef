"""SPLASH system configuration loaded from environment variables."""
import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# ============================================================================
# Database Configuration
# ============================================================================

DB_CONFIG = {
    'host': os.getenv('DB_HOST', 'localhost'),
    'port': int(os.getenv('DB_PORT', '5432')),
    'database': os.getenv('DB_NAME', 'splash'),
    'user': os.getenv('DB_USER', 'splash_user'),
    'password': os.getenv('DB_PASSWORD', ''),
}

DB_MIN_CONNECTIONS = int(os.getenv('DB_MIN_CONNECTIONS', '1'))
DB_MAX_CONNECTIONS = int(os.getenv('DB_MAX_CONNECTIONS', '10'))

# ============================================================================
# Feed Configuration
# ============================================================================

FEED_URL = os.getenv('FEED_URL', 'https://contract.mexc.com/api/v1/contract/ticker')
FEED_TIMEOUT_SEC = float(os.getenv('FEED_TIMEOUT_SEC', '3'))
POLL_INTERVAL_MS = int(os.getenv('POLL_INTERVAL_MS', '100'))

# ============================================================================
# Detection Parameters
# ============================================================================

# Idle symbols get a fresh reference snapshot this often
WINDOW_DURATION_SEC = float(os.getenv('WINDOW_DURATION_SEC', '300'))

# Default tier ladder: level in percent, window in minutes
DEFAULT_TIERS = '[{"level": 3, "window": 10}, {"level": 5, "window": 15}]'
SPLASH_TIERS_JSON = os.getenv('SPLASH_TIERS', DEFAULT_TIERS)


def _load_json(raw: str) -> Optional[List[Dict]]:
    """Decode a JSON setting; None lets validate_config() report it."""
    try:
        return json.loads(raw)
    except ValueError:
        return None


SPLASH_TIERS: Optional[List[Dict]] = _load_json(SPLASH_TIERS_JSON)

# ============================================================================
# Return Tracking Parameters
# ============================================================================

RETURN_POLL_INTERVAL_MS = int(os.getenv('RETURN_POLL_INTERVAL_MS', '50'))
RETURN_WARMUP_TICKS = int(os.getenv('RETURN_WARMUP_TICKS', '2'))
BASE_TOLERANCE = float(os.getenv('BASE_TOLERANCE', '0.005'))
TOLERANCE_SCALE = float(os.getenv('TOLERANCE_SCALE', '0.1'))

# ============================================================================
# Win Probability Context
# ============================================================================

MIN_SAMPLE_SIZE = int(os.getenv('MIN_SAMPLE_SIZE', '3'))
VOLUME_BAND_LOW = float(os.getenv('VOLUME_BAND_LOW', '0.5'))
VOLUME_BAND_HIGH = float(os.getenv('VOLUME_BAND_HIGH', '2.0'))
BASIS_GAP_BAND = float(os.getenv('BASIS_GAP_BAND', '0.5'))

# ============================================================================
# API Configuration
# ============================================================================

API_HOST = os.getenv('API_HOST', '127.0.0.1')
API_PORT = int(os.getenv('API_PORT', '0'))

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_FILE = os.getenv('LOG_FILE', '')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'detailed')

# ============================================================================
# Development & Testing
# ============================================================================

MOCK_FEED_DATA = bool(int(os.getenv('MOCK_FEED_DATA', '0')))
MOCK_PERSISTENCE = bool(int(os.getenv('MOCK_PERSISTENCE', '0')))
MOCK_DATA_SEED = int(os.getenv('MOCK_DATA_SEED', '42'))

# ============================================================================
# Validation
# ============================================================================

def validate_config() -> None:
    """Validate configuration values."""
    errors = []

    if POLL_INTERVAL_MS <= 0:
        errors.append("POLL_INTERVAL_MS must be positive")

    if RETURN_POLL_INTERVAL_MS <= 0:
        errors.append("RETURN_POLL_INTERVAL_MS must be positive")

    if RETURN_WARMUP_TICKS < 0:
        errors.append("RETURN_WARMUP_TICKS must be >= 0")

    if WINDOW_DURATION_SEC <= 0:
        errors.append("WINDOW_DURATION_SEC must be positive")

    if not (0 <= BASE_TOLERANCE < 1):
        errors.append("BASE_TOLERANCE must be between 0 and 1")

    if TOLERANCE_SCALE < 0:
        errors.append("TOLERANCE_SCALE must be >= 0")

    if MIN_SAMPLE_SIZE < 1:
        errors.append("MIN_SAMPLE_SIZE must be at least 1")

    if not (0 < VOLUME_BAND_LOW <= 1 <= VOLUME_BAND_HIGH):
        errors.append("VOLUME_BAND_LOW must be in (0, 1] and VOLUME_BAND_HIGH >= 1")

    if BASIS_GAP_BAND < 0:
        errors.append("BASIS_GAP_BAND must be >= 0")

    if SPLASH_TIERS is None:
        errors.append(f"SPLASH_TIERS is not valid JSON: {SPLASH_TIERS_JSON!r}")
    elif not isinstance(SPLASH_TIERS, list) or not SPLASH_TIERS:
        errors.append("SPLASH_TIERS must be a non-empty JSON list")
    else:
        from splash.state.tiers import parse_tiers

        try:
            parse_tiers(SPLASH_TIERS)
        except ValueError as e:
            errors.append(f"SPLASH_TIERS: {e}")

    if DB_MIN_CONNECTIONS > DB_MAX_CONNECTIONS:
        errors.append("DB_MIN_CONNECTIONS must be <= DB_MAX_CONNECTIONS")

    if errors:
        raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


# ============================================================================
# Logging Setup
# ============================================================================

def setup_logging(level_name: Optional[str] = None) -> None:
    """Configure root logging from LOG_* settings; level_name overrides LOG_LEVEL."""
    import logging
    import sys

    level = getattr(logging, (level_name or LOG_LEVEL).upper(), logging.INFO)

    if LOG_FORMAT == 'json':
        format_string = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    elif LOG_FORMAT == 'detailed':
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    else:  # simple
        format_string = '%(levelname)s: %(message)s'

    handlers = []

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(format_string))
    handlers.append(stdout_handler)

    if LOG_FILE:
        file_handler = logging.FileHandler(LOG_FILE)
        file_handler.setFormatter(logging.Formatter(format_string))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True
    )

    logging.getLogger('splash').setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


# ============================================================================
# Initialization
# ============================================================================

validate_config()
