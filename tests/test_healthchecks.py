import logging
from urllib.error import HTTPError, URLError

from core.monitoring import healthchecks
from core.monitoring.healthchecks import MonitoringReporter
from runner.config_store import TargetConfig

logger = logging.getLogger("tests.healthchecks")


class _Response:
    def __init__(self, status=200):
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _record(monkeypatch, status=200, error=None):
    urls = []

    def fake_urlopen(req, timeout):
        urls.append(req.full_url)
        if error is not None:
            raise error
        return _Response(status)

    monkeypatch.setattr(healthchecks, "urlopen", fake_urlopen)
    return urls


def test_signals_hit_expected_urls(monkeypatch):
    urls = _record(monkeypatch)
    reporter = MonitoringReporter("abc", logger, base_url="https://hc.example/")

    assert reporter.start()
    assert reporter.success()
    assert reporter.failure()

    assert urls == ["https://hc.example/abc/start", "https://hc.example/abc", "https://hc.example/abc/fail"]


def test_without_monitoring_id_nothing_is_sent(monkeypatch, caplog):
    urls = _record(monkeypatch)
    reporter = MonitoringReporter.from_config(TargetConfig(name="t", repo="r", passphrase="p"), logger)

    with caplog.at_level(logging.INFO, logger="tests.healthchecks"):
        assert reporter.start() is False
        assert reporter.failure() is False

    assert urls == []
    assert "Supervision désactivée" in caplog.text


def test_network_errors_are_swallowed(monkeypatch, caplog):
    _record(monkeypatch, error=URLError("dns"))
    reporter = MonitoringReporter("abc", logger)

    with caplog.at_level(logging.WARNING, logger="tests.healthchecks"):
        assert reporter.success() is False

    assert "non envoyé" in caplog.text


def test_http_errors_and_timeouts_are_swallowed(monkeypatch):
    _record(monkeypatch, error=HTTPError("https://hc-ping.com/abc", 404, "Not Found", {}, None))
    assert MonitoringReporter("abc", logger).failure() is False

    _record(monkeypatch, error=TimeoutError("slow"))
    assert MonitoringReporter("abc", logger).start() is False


def test_unexpected_status_is_not_a_success(monkeypatch):
    _record(monkeypatch, status=302)

    assert MonitoringReporter("abc", logger).success() is False
