"""Runtime settings and constant tables.

Every tunable is read from a ``WPANALYZER_*`` environment variable when
``Settings.from_env()`` is called, so tests can monkeypatch the environment
and build a fresh instance.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from .exceptions import ConfigurationError

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

# Remote endpoints probed by the version detector, relative to the site root.
VERSION_ENDPOINTS: Dict[str, str] = {
    'readme': '/readme.html',
    'opml': '/wp-links-opml.php',
    'rss': '/feed/',
}

REGISTRY_API_URL = 'https://api.wordpress.org/plugins/info/1.2/'
PAGESPEED_API_URL = 'https://www.googleapis.com/pagespeedonline/v5/runPagespeed'

# Per-plugin performance scoring caps.
SIZE_POINTS_PER_MB = 20
SIZE_POINTS_CAP = 40
REQUEST_POINTS_EACH = 5
REQUEST_POINTS_CAP = 20
BLOCKING_POINTS_EACH = 15
BLOCKING_POINTS_CAP = 30

HIGH_IMPACT_SCORE = 50
LARGE_FILE_BYTES = 100 * 1024
PLUGIN_AUDIT_THRESHOLD = 5

TOP_RECOMMENDATIONS = 10


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except ValueError:
        return default


@dataclass
class Settings:
    timeout: float = 10.0
    max_redirects: int = 5
    user_agent: str = DEFAULT_USER_AGENT
    pagespeed_api_key: Optional[str] = None
    pagespeed_enabled: bool = False
    pagespeed_max_retries: int = 3
    pagespeed_backoff: float = 2.0
    registry_enabled: bool = True
    registry_delay: float = 0.1
    registry_cache_size: int = 1024
    batch_delay: float = 1.0
    max_concurrent_requests: int = 5
    min_wp_version: str = '6.3'

    @classmethod
    def from_env(cls) -> 'Settings':
        key = os.environ.get('PSI_API_KEY') or None
        return cls(
            timeout=_env_float('WPANALYZER_TIMEOUT', 10.0),
            max_redirects=_env_int('WPANALYZER_MAX_REDIRECTS', 5),
            user_agent=os.environ.get('WPANALYZER_USER_AGENT', DEFAULT_USER_AGENT),
            pagespeed_api_key=key,
            pagespeed_enabled=_env_bool('WPANALYZER_PAGESPEED', bool(key)),
            pagespeed_max_retries=_env_int('WPANALYZER_PAGESPEED_RETRIES', 3),
            registry_enabled=_env_bool('WPANALYZER_REGISTRY', True),
            registry_delay=_env_int('WPANALYZER_REGISTRY_DELAY_MS', 100) / 1000.0,
            registry_cache_size=_env_int('WPANALYZER_REGISTRY_CACHE_SIZE', 1024),
            batch_delay=_env_int('WPANALYZER_BATCH_DELAY_MS', 1000) / 1000.0,
            max_concurrent_requests=_env_int('WPANALYZER_MAX_CONCURRENCY', 5),
            min_wp_version=os.environ.get('WPANALYZER_MIN_WP_VERSION', '6.3'),
        ).validate()

    def validate(self) -> 'Settings':
        if self.timeout <= 0:
            raise ConfigurationError('WPANALYZER_TIMEOUT', 'must be positive')
        if self.max_concurrent_requests < 1:
            raise ConfigurationError('WPANALYZER_MAX_CONCURRENCY', 'must be at least 1')
        if self.max_redirects < 0:
            raise ConfigurationError('WPANALYZER_MAX_REDIRECTS', 'must not be negative')
        if self.registry_cache_size < 1:
            raise ConfigurationError('WPANALYZER_REGISTRY_CACHE_SIZE', 'must be at least 1')
        return self
