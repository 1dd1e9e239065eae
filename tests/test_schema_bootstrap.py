"""
Tests for lazy schema bootstrap.

Tests cover:
1. Script rendering and splitting
2. Existence check (catalog first, query fallback)
3. One-shot latch semantics, retry after failure
4. Post-initialization hooks
"""

import threading
from unittest.mock import MagicMock, patch

from sqlalchemy import inspect

from onlinebank.core.schema import SchemaBootstrapper, render_schema_script, split_statements


class TestScript:
    def test_render_contains_table_and_indexes(self, empty_engine):
        script = render_schema_script(empty_engine.dialect)
        assert "CREATE TABLE clients" in script
        assert "CREATE UNIQUE INDEX ix_clients_account_number" in script
        assert "CREATE INDEX ix_clients_last_name" in script

    def test_split_statements(self):
        script = """
        -- schema
        CREATE TABLE a (id INTEGER);

        CREATE INDEX ix_a ON a (id);
        ;
        """
        statements = split_statements(script)
        assert statements == ["CREATE TABLE a (id INTEGER)", "CREATE INDEX ix_a ON a (id)"]


class TestEnsureSchema:
    def test_creates_missing_schema(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)

        assert bootstrapper.ensure_schema() is True
        assert bootstrapper.is_initialized is True
        with empty_engine.connect() as conn:
            assert inspect(conn).has_table("clients")

    def test_existing_schema_not_reapplied(self, test_engine):
        bootstrapper = SchemaBootstrapper(test_engine)
        with patch.object(bootstrapper, "_apply_script") as apply:
            assert bootstrapper.ensure_schema() is True
        apply.assert_not_called()
        assert bootstrapper.is_initialized is True

    def test_custom_script_path(self, empty_engine, tmp_path):
        script = tmp_path / "schema.sql"
        script.write_text(
            "CREATE TABLE clients (id INTEGER PRIMARY KEY, note TEXT);\n"
            "CREATE INDEX ix_note ON clients (note);\n",
            encoding="utf-8",
        )
        bootstrapper = SchemaBootstrapper(empty_engine, script_path=str(script))

        assert bootstrapper.ensure_schema() is True
        with empty_engine.connect() as conn:
            columns = {c["name"] for c in inspect(conn).get_columns("clients")}
        assert columns == {"id", "note"}

    def test_catalog_failure_falls_back_to_query(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        with patch("onlinebank.core.schema.inspect", side_effect=RuntimeError("no catalog")):
            with patch.object(bootstrapper, "_apply_script") as apply:
                assert bootstrapper.ensure_schema() is True
        # COUNT(*) on a missing table fails -> treated as missing
        apply.assert_called_once()

    def test_catalog_failure_with_existing_table(self, test_engine):
        bootstrapper = SchemaBootstrapper(test_engine)
        with patch("onlinebank.core.schema.inspect", side_effect=RuntimeError("no catalog")):
            with patch.object(bootstrapper, "_apply_script") as apply:
                assert bootstrapper.ensure_schema() is True
        apply.assert_not_called()


class TestLatch:
    """Bootstrap at most once while latched; failures reset and retry."""

    def test_repeated_edges_apply_once(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        with patch.object(bootstrapper, "_apply_script", wraps=bootstrapper._apply_script) as apply:
            bootstrapper.on_availability_change(True)
            bootstrapper.on_availability_change(False)
            bootstrapper.on_availability_change(True)
            bootstrapper.on_availability_change(True)
        assert apply.call_count == 1

    def test_failure_leaves_latch_unset_and_next_edge_retries(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        real_apply = bootstrapper._apply_script
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("disk full")
            real_apply()

        with patch.object(bootstrapper, "_apply_script", side_effect=flaky):
            bootstrapper.on_availability_change(True)
            assert bootstrapper.is_initialized is False

            bootstrapper.on_availability_change(True)
            assert bootstrapper.is_initialized is True

            bootstrapper.on_availability_change(True)

        assert len(attempts) == 2

    def test_unavailable_edge_does_nothing(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        with patch.object(bootstrapper, "ensure_schema") as ensure:
            bootstrapper.on_availability_change(False)
        ensure.assert_not_called()

    def test_concurrent_edges_apply_once(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        barrier = threading.Barrier(8)

        with patch.object(bootstrapper, "_apply_script", wraps=bootstrapper._apply_script) as apply:
            def edge():
                barrier.wait()
                bootstrapper.on_availability_change(True)

            threads = [threading.Thread(target=edge) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert apply.call_count == 1
        assert bootstrapper.is_initialized is True


class TestPostInitHooks:
    def test_hook_runs_once_after_success(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        hook = MagicMock()
        bootstrapper.add_listener(hook)

        bootstrapper.ensure_schema()
        bootstrapper.ensure_schema()

        hook.assert_called_once_with()

    def test_hook_not_run_after_failure(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        hook = MagicMock()
        bootstrapper.add_listener(hook)

        with patch.object(bootstrapper, "_apply_script", side_effect=RuntimeError("fail")):
            assert bootstrapper.ensure_schema() is False
        hook.assert_not_called()

    def test_failing_hook_keeps_latch(self, empty_engine):
        bootstrapper = SchemaBootstrapper(empty_engine)
        bootstrapper.add_listener(MagicMock(side_effect=RuntimeError("seed failed")))

        assert bootstrapper.ensure_schema() is True
        assert bootstrapper.is_initialized is True
