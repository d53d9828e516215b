import pytest

from wpanalyzer.config import Settings
from wpanalyzer.exceptions import ConfigurationError


def test_defaults(monkeypatch):
    for name in ('PSI_API_KEY', 'WPANALYZER_PAGESPEED', 'WPANALYZER_TIMEOUT', 'WPANALYZER_REGISTRY'):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.timeout == 10.0
    assert s.pagespeed_api_key is None
    assert s.pagespeed_enabled is False
    assert s.registry_enabled is True
    assert s.batch_delay == 1.0


def test_pagespeed_follows_key(monkeypatch):
    monkeypatch.setenv('PSI_API_KEY', 'abc')
    monkeypatch.delenv('WPANALYZER_PAGESPEED', raising=False)
    assert Settings.from_env().pagespeed_enabled is True
    monkeypatch.setenv('WPANALYZER_PAGESPEED', '0')
    assert Settings.from_env().pagespeed_enabled is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv('WPANALYZER_TIMEOUT', '2.5')
    monkeypatch.setenv('WPANALYZER_REGISTRY_DELAY_MS', '250')
    monkeypatch.setenv('WPANALYZER_MAX_CONCURRENCY', 'lots')
    s = Settings.from_env()
    assert s.timeout == 2.5
    assert s.registry_delay == 0.25
    assert s.max_concurrent_requests == 5


@pytest.mark.parametrize('env,value', [
    ('WPANALYZER_TIMEOUT', '0'),
    ('WPANALYZER_MAX_CONCURRENCY', '0'),
    ('WPANALYZER_MAX_REDIRECTS', '-1'),
    ('WPANALYZER_REGISTRY_CACHE_SIZE', '0'),
])
def test_invalid_values_raise(monkeypatch, env, value):
    monkeypatch.setenv(env, value)
    with pytest.raises(ConfigurationError) as exc:
        Settings.from_env()
    assert exc.value.details['setting'] == env
