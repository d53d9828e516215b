"""Tests for wpanalyzer.metrics."""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from prometheus_client import REGISTRY


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestRecordAnalysis:
    def test_success_counts_plugins(self):
        from wpanalyzer.metrics import record_analysis

        before = _sample("wpanalyzer_analyses_total", {"mode": "single", "status": "success"})
        plugins_before = _sample("wpanalyzer_plugins_detected_count")
        record_analysis(mode="single", status="success", duration=1.5, plugin_count=4)
        assert _sample("wpanalyzer_analyses_total", {"mode": "single", "status": "success"}) == before + 1
        assert _sample("wpanalyzer_plugins_detected_count") == plugins_before + 1

    def test_not_wordpress_skips_plugin_histogram(self):
        from wpanalyzer.metrics import record_analysis

        plugins_before = _sample("wpanalyzer_plugins_detected_count")
        record_analysis(mode="quick", status="not_wordpress", duration=0.2)
        assert _sample("wpanalyzer_plugins_detected_count") == plugins_before

    def test_fetch_error_and_cache_counters(self):
        from wpanalyzer.metrics import record_fetch_error, record_registry_cache

        before = _sample("wpanalyzer_fetch_errors_total", {"kind": "timeout"})
        record_fetch_error("timeout")
        assert _sample("wpanalyzer_fetch_errors_total", {"kind": "timeout"}) == before + 1

        hits = _sample("wpanalyzer_registry_cache_total", {"result": "hit"})
        record_registry_cache(True)
        record_registry_cache(False)
        assert _sample("wpanalyzer_registry_cache_total", {"result": "hit"}) == hits + 1


class TestActiveGauge:
    def test_track_active_analysis(self):
        from wpanalyzer.metrics import track_active_analysis

        base = _sample("wpanalyzer_active_analyses")
        with track_active_analysis() as t:
            assert _sample("wpanalyzer_active_analyses") == base + 1
            assert t.duration >= 0
        assert _sample("wpanalyzer_active_analyses") == base

    def test_gauge_released_on_error(self):
        from wpanalyzer.metrics import track_active_analysis

        base = _sample("wpanalyzer_active_analyses")
        try:
            with track_active_analysis():
                raise ValueError("boom")
        except ValueError:
            pass
        assert _sample("wpanalyzer_active_analyses") == base


class TestExposition:
    def test_get_metrics_returns_bytes(self):
        from wpanalyzer.metrics import get_metrics

        result = get_metrics()
        assert isinstance(result, bytes)
        assert b"wpanalyzer_active_analyses" in result

    def test_get_content_type_returns_string(self):
        from wpanalyzer.metrics import get_content_type

        assert get_content_type().startswith("text/plain")
