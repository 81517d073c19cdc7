"""
activity-sense
==============

Streaming human activity recognition from smartphone motion sensors.

This package provides:
- A bounded sliding window of accelerometer / gyroscope samples
- Per-axis mean and population standard deviation features
- Periodic classification through a pluggable backend (Gemini or heuristic)
  with the previous activity forwarded as context
- Simulated and UDP motion sources
- Labeled feature recording and a WebSocket live view

Example usage:
    >>> from activity_sense.config.settings import get_test_settings
    >>> from activity_sense.sensing import ActivitySession, HeuristicClassifier
    >>>
    >>> session = ActivitySession.from_settings(get_test_settings(), HeuristicClassifier())

For CLI usage:
    $ activity-sense run --backend heuristic --duration 30
    $ activity-sense serve
    $ activity-sense collect --label Walking --duration 60
"""

__version__ = "0.3.0"
__author__ = "activity-sense contributors"
__license__ = "MIT"

# Package metadata
__title__ = "activity-sense"
__description__ = "Streaming human activity recognition from smartphone motion sensors"

# Version info tuple
__version_info__ = tuple(int(x) for x in __version__.split('.'))


def get_version():
    """Get package version."""
    return __version__


def get_version_info():
    """Get version info tuple."""
    return __version_info__


__all__ = [
    '__version__',
    '__version_info__',
    'get_version',
    'get_version_info',
]
