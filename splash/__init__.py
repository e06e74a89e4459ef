"""
SPLASH: abrupt price deviation detection and return tracking.

Polls a futures ticker feed, classifies sudden moves away from a rolling
reference against configurable severity tiers, and follows every detected
episode until price either returns to the reference or its tier window runs
out. Outcomes are persisted so each new episode can be scored with a
contextual historical win rate.
"""

__version__ = '0.1.0'

from splash.config import (
    DB_CONFIG,
    FEED_URL,
    POLL_INTERVAL_MS,
    WINDOW_DURATION_SEC,
)

__all__ = [
    '__version__',
    'DB_CONFIG',
    'FEED_URL',
    'POLL_INTERVAL_MS',
    'WINDOW_DURATION_SEC',
]
