from config import DEFAULT_API_URL, load_settings


def test_defaults(monkeypatch):
    for name in ('BUGTRACK_API_URL', 'BUGTRACK_POLL_INTERVAL_MS', 'BUGTRACK_SCAN_FALLBACK', 'BUGTRACK_TIMEOUT', 'BUGTRACK_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.api_url == DEFAULT_API_URL == 'http://localhost:5000/api'
    assert settings.poll_interval_ms == 5000
    assert settings.scan_fallback is True
    assert settings.timeout is None
    assert settings.log_level == 'WARNING'


def test_env_overrides(monkeypatch):
    monkeypatch.setenv('BUGTRACK_API_URL', 'https://bugs.example.org/api/')
    monkeypatch.setenv('BUGTRACK_POLL_INTERVAL_MS', '0')
    monkeypatch.setenv('BUGTRACK_SCAN_FALLBACK', 'off')
    monkeypatch.setenv('BUGTRACK_TIMEOUT', '7.5')
    monkeypatch.setenv('BUGTRACK_LOG_LEVEL', 'debug')
    settings = load_settings()
    assert settings.api_url == 'https://bugs.example.org/api'
    assert settings.poll_interval_ms == 0
    assert settings.scan_fallback is False
    assert settings.timeout == 7.5
    assert settings.log_level == 'DEBUG'


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv('BUGTRACK_POLL_INTERVAL_MS', 'soon')
    monkeypatch.setenv('BUGTRACK_SCAN_FALLBACK', 'maybe')
    monkeypatch.setenv('BUGTRACK_TIMEOUT', 'never')
    settings = load_settings()
    assert settings.poll_interval_ms == 5000
    assert settings.scan_fallback is True
    assert settings.timeout is None
