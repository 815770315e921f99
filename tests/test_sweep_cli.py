import logging

import pytest

import sweep
from app.chat.models import SweepResult


class DummyConn:
    closed = False

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def _no_log_files(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    monkeypatch.setattr(sweep, "init_logging", lambda console=False: None)


def test_run_once_uses_autocommit_connection(monkeypatch, store):
    conn = DummyConn()
    calls = {}

    def fake_connect(url, *, autocommit=False):
        calls["url"] = url
        calls["autocommit"] = autocommit
        return conn

    monkeypatch.setattr(sweep, "connect", fake_connect)
    monkeypatch.setattr(sweep, "PostgresChatStore", lambda c: store)

    result = sweep.run_once("postgresql://db/chat")

    assert result == SweepResult()
    assert calls == {"url": "postgresql://db/chat", "autocommit": True}
    assert conn.closed is True


def test_once_exits_zero_on_clean_run(monkeypatch):
    monkeypatch.setattr(sweep, "run_once", lambda url: SweepResult(processed=2, tenants=1))

    assert sweep.main(["--once", "--database-url", "postgresql://db/chat"]) == 0


def test_once_exits_non_zero_on_failures(monkeypatch):
    monkeypatch.setattr(sweep, "run_once", lambda url: SweepResult(failures=1))

    assert sweep.main(["--once", "--database-url", "postgresql://db/chat"]) == 1


def test_once_reports_aborted_sweep(monkeypatch, caplog):
    def boom(url):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(sweep, "run_once", boom)

    with caplog.at_level(logging.ERROR, logger="app.sweep"):
        assert sweep.main(["--once", "--database-url", "postgresql://db/chat"]) == 1
    assert "automation sweep aborted" in caplog.text


def test_loop_sleeps_between_runs(monkeypatch):
    runs = []
    sleeps = []

    class Stop(Exception):
        pass

    def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            raise Stop

    monkeypatch.setattr(sweep, "run_once", lambda url: runs.append(url) or SweepResult())
    monkeypatch.setattr(sweep.time, "sleep", fake_sleep)

    with pytest.raises(Stop):
        sweep.main(["--interval", "5", "--database-url", "postgresql://db/chat"])

    assert len(runs) == 2
    assert sleeps == [5, 5]


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(sweep, "load_dotenv", lambda: None)

    with pytest.raises(SystemExit):
        sweep.main(["--once"])


def test_interval_must_be_positive():
    with pytest.raises(SystemExit):
        sweep.main(["--once", "--interval", "0", "--database-url", "postgresql://db/chat"])
