"""
Tests for the database connectivity probe.

Tests cover:
1. Flag tracks the most recent probe outcome
2. Listeners fire on transitions only
3. Bounded attempts (timeouts, driver errors never escape)
4. Scheduling lifecycle (start / stop)
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from onlinebank.core.probe import ConnectionProbe, _server_version


def _down():
    raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def _scripted(probe: ConnectionProbe, outcomes):
    """Make successive probe attempts succeed (True) or fail (False)."""
    results = iter(outcomes)

    def check():
        if next(results):
            return "16.2"
        _down()

    return patch.object(probe, "_check_connection", side_effect=check)


class TestProbeFlag:
    """The availability flag equals the outcome of the most recent probe."""

    def test_starts_unavailable(self):
        probe = ConnectionProbe(MagicMock())
        assert probe.is_available() is False
        assert probe.database_version is None
        probe.stop()

    @pytest.mark.parametrize(
        "outcomes",
        [
            [True],
            [False],
            [True, False],
            [False, True],
            [True, True, False, False, True],
            [False, False, True, False, True, True],
        ],
    )
    def test_flag_matches_last_outcome(self, outcomes):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        with _scripted(probe, outcomes):
            for expected in outcomes:
                assert probe.probe_once() is expected
                assert probe.is_available() is expected
        probe.stop()

    def test_version_cached_while_up_and_cleared_when_down(self):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        with _scripted(probe, [True, False]):
            probe.probe_once()
            assert probe.database_version == "16.2"
            probe.probe_once()
            assert probe.database_version is None
        probe.stop()

    def test_status_reports_last_error(self):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        with _scripted(probe, [False]):
            probe.probe_once()

        status = probe.status()
        assert status["available"] is False
        assert "connection refused" in status["lastError"]
        assert status["lastProbeAt"] is not None
        probe.stop()


class TestProbeFailures:
    """Every failure is converted to False; nothing escapes."""

    def test_driver_error_returns_false(self):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        with patch.object(probe, "_check_connection", side_effect=RuntimeError("boom")):
            assert probe.probe_once() is False
        assert probe.is_available() is False
        probe.stop()

    def test_attempt_bounded_by_validation_timeout(self):
        release = threading.Event()
        probe = ConnectionProbe(MagicMock(), validation_timeout=0.05)

        def hang():
            release.wait(5)
            return "16.2"

        with patch.object(probe, "_check_connection", side_effect=hang):
            start = time.perf_counter()
            result = probe.probe_once()
            elapsed = time.perf_counter() - start

        release.set()
        probe.stop()

        assert result is False
        assert elapsed < 1.0
        assert "timed out" in probe.status()["lastError"]

    def test_probe_after_stop_reports_unavailable(self):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        probe.stop()
        assert probe.probe_once() is False


class TestServerVersion:
    def test_postgres_reports_full_banner(self):
        connection = MagicMock()
        connection.dialect.name = "postgresql"
        connection.exec_driver_sql.return_value.scalar.return_value = "PostgreSQL 16.2 on x86_64-pc-linux-gnu"

        assert _server_version(connection) == "PostgreSQL 16.2 on x86_64-pc-linux-gnu"
        connection.exec_driver_sql.assert_called_once_with("SELECT version()")

    def test_other_dialects_use_version_info(self):
        connection = MagicMock()
        connection.dialect.name = "sqlite"
        connection.dialect.server_version_info = (3, 45, 1)

        assert _server_version(connection) == "3.45.1"
        connection.exec_driver_sql.assert_not_called()

    def test_real_sqlite_connection(self, empty_engine):
        with empty_engine.connect() as connection:
            assert _server_version(connection).count(".") == 2


class TestProbeListeners:
    """Listeners observe each transition exactly once."""

    def test_listeners_called_on_transitions_only(self):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        events = []
        probe.add_listener(events.append)

        with _scripted(probe, [False, True, True, True, False, False, True]):
            for _ in range(7):
                probe.probe_once()

        assert events == [True, False, True]
        probe.stop()

    def test_failing_listener_does_not_break_probe(self):
        probe = ConnectionProbe(MagicMock(), validation_timeout=1.0)
        calls = []

        def broken(available):
            raise RuntimeError("listener failure")

        probe.add_listener(broken)
        probe.add_listener(calls.append)

        with _scripted(probe, [True]):
            assert probe.probe_once() is True

        assert probe.is_available() is True
        assert calls == [True]
        probe.stop()


class TestProbeLifecycle:
    """start() probes synchronously, then schedules; stop() shuts down."""

    def test_start_probes_immediately(self, test_engine):
        probe = ConnectionProbe(test_engine, interval_seconds=3600, validation_timeout=2.0)
        try:
            probe.start()
            assert probe.is_available() is True
            assert probe.is_running is True
            assert probe.database_version is not None
        finally:
            probe.stop()
        assert probe.is_running is False

    def test_start_with_database_down_does_not_raise(self):
        probe = ConnectionProbe(MagicMock(), interval_seconds=3600, validation_timeout=1.0)
        with patch.object(probe, "_check_connection", side_effect=_down):
            probe.start()
        try:
            assert probe.is_available() is False
            assert probe.is_running is True
        finally:
            probe.stop()

    def test_start_is_idempotent(self):
        probe = ConnectionProbe(MagicMock(), interval_seconds=3600, validation_timeout=1.0)
        with patch.object(probe, "_check_connection", return_value="16.2") as check:
            probe.start()
            probe.start()
        probe.stop()
        assert check.call_count == 1

    def test_background_job_repeats(self):
        probe = ConnectionProbe(MagicMock(), interval_seconds=0.05, validation_timeout=1.0)
        with patch.object(probe, "_check_connection", return_value="16.2") as check:
            probe.start()
            deadline = time.monotonic() + 5
            while check.call_count < 3 and time.monotonic() < deadline:
                time.sleep(0.02)
            probe.stop()
        assert check.call_count >= 3
