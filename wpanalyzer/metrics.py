"""Prometheus metrics for the analyzer.

Exposed at the /metrics/prometheus endpoint.
"""

import time

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

# ============ Metrics Definitions ============

ANALYSES_TOTAL = Counter(
    'wpanalyzer_analyses_total',
    'Total number of site analyses performed',
    ['mode', 'status']  # mode: single/batch/quick, status: success/not_wordpress/error
)

ANALYSIS_DURATION = Histogram(
    'wpanalyzer_analysis_duration_seconds',
    'Time spent analyzing one site',
    ['mode'],
    buckets=[0.5, 1, 2, 5, 10, 20, 30, 60, 120, 240]
)

ACTIVE_ANALYSES = Gauge(
    'wpanalyzer_active_analyses',
    'Number of analyses currently running'
)

PLUGINS_DETECTED = Histogram(
    'wpanalyzer_plugins_detected',
    'Plugins detected per analyzed site',
    buckets=[0, 1, 2, 5, 10, 20, 40]
)

FETCH_ERRORS = Counter(
    'wpanalyzer_fetch_errors_total',
    'Failed outbound fetches',
    ['kind']  # timeout, transport, status
)

REGISTRY_CACHE = Counter(
    'wpanalyzer_registry_cache_total',
    'Plugin registry cache lookups',
    ['result']  # hit, miss
)


# ============ Helper Functions ============

def record_analysis(mode: str, status: str, duration: float, plugin_count: int = 0):
    """Record one finished analysis.

    Args:
        mode: 'single', 'batch' or 'quick'
        status: 'success', 'not_wordpress' or 'error'
        duration: Wall-clock seconds
        plugin_count: Plugins found, only observed for successful runs
    """
    ANALYSES_TOTAL.labels(mode=mode, status=status).inc()
    ANALYSIS_DURATION.labels(mode=mode).observe(duration)
    if status == 'success':
        PLUGINS_DETECTED.observe(plugin_count)


def record_fetch_error(kind: str):
    FETCH_ERRORS.labels(kind=kind).inc()


def record_registry_cache(hit: bool):
    REGISTRY_CACHE.labels(result='hit' if hit else 'miss').inc()


class track_active_analysis:
    """Context manager keeping the active-analysis gauge current."""

    def __enter__(self):
        ACTIVE_ANALYSES.inc()
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        ACTIVE_ANALYSES.dec()
        return False

    @property
    def duration(self) -> float:
        return time.perf_counter() - self.start_time


def get_metrics() -> bytes:
    return generate_latest()


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
