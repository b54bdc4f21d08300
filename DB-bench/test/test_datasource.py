"""
Tests for datasource properties and the SQLAlchemy pool system, using SQLite files.
"""

import unittest
import tempfile
import os
import sys
import io

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import OperationalError

from cli.benchmark import BenchmarkRunner
from common.exceptions import ConfigurationError
from systems.datasource import DataSourceSettings, build_engine, load_properties
from systems.sql_pool import SqlPoolSystem


class TestLoadProperties(unittest.TestCase):
    """Test .properties parsing."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, content):
        path = os.path.join(self.tmpdir.name, "db.properties")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_parses_keys_and_comments(self):
        path = self._write(
            "# datasource\n"
            "connectionUrl=postgresql://db.example.com:5432/bench\n"
            "! another comment\n"
            "username: bench_user\n"
            "connectionProperties.sslMode = require\n"
            "maxWaitMillis=5000\n"
        )
        properties = load_properties(path)
        self.assertEqual(properties, {
            "connectionUrl": "postgresql://db.example.com:5432/bench",
            "username": "bench_user",
            "connectionProperties.sslMode": "require",
            "maxWaitMillis": "5000",
        })

    def test_java_properties_syntax(self):
        path = self._write(
            "connectionUrl=postgresql\\://db.example.com\\:5432/bench\n"
            "validationQuery SELECT 1\n"
            "[pool]=ignored-section-look\n"
            "connectionProperties.options=-c \\\n"
            "    search_path=bench\n"
            "key\\ with\\ spaces=x\n"
            "greeting=caf\\u00e9\n"
            "username=first\n"
            "username=second\n"
        )
        properties = load_properties(path)
        self.assertEqual(properties["connectionUrl"], "postgresql://db.example.com:5432/bench")
        self.assertEqual(properties["validationQuery"], "SELECT 1")
        self.assertEqual(properties["[pool]"], "ignored-section-look")
        self.assertEqual(properties["connectionProperties.options"], "-c search_path=bench")
        self.assertEqual(properties["key with spaces"], "x")
        self.assertEqual(properties["greeting"], "café")
        self.assertEqual(properties["username"], "second")

    def test_escaped_url_builds_settings(self):
        path = self._write("connectionUrl=sqlite\\:///bench.db\n")
        settings = DataSourceSettings.from_properties(load_properties(path), pool_size=1)
        self.assertEqual(settings.url.drivername, "sqlite")
        self.assertEqual(settings.url.database, "bench.db")

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError) as ctx:
            load_properties(os.path.join(self.tmpdir.name, "missing.properties"))
        self.assertIn("does not exist", str(ctx.exception))


class TestDataSourceSettings(unittest.TestCase):
    """Test mapping properties onto pool settings."""

    def test_connection_url_required(self):
        with self.assertRaises(ConfigurationError) as ctx:
            DataSourceSettings.from_properties({"username": "u"}, pool_size=2)
        self.assertIn("connectionUrl", str(ctx.exception))

    def test_invalid_url(self):
        with self.assertRaises(ConfigurationError):
            DataSourceSettings.from_properties({"connectionUrl": "not a url"}, pool_size=2)

    def test_unknown_pool_type(self):
        with self.assertRaises(ConfigurationError):
            DataSourceSettings.from_properties({"connectionUrl": "sqlite://"}, pool_size=2, pool_type="dbcp")

    def test_full_mapping(self):
        settings = DataSourceSettings.from_properties({
            "connectionUrl": "postgresql://db.example.com:5432/bench",
            "driverClassName": "postgresql+psycopg2",
            "username": "alice",
            "password": "secret",
            "connectionProperties.sslmode": "require",
            "connectionProperties.user": "bob",
            "validationQuery": "SELECT 1",
            "maxWaitMillis": "2500",
        }, pool_size=8, pool_type="lifo")

        self.assertEqual(settings.url.drivername, "postgresql+psycopg2")
        self.assertEqual(settings.url.username, "bob")
        self.assertEqual(settings.url.password, "secret")
        self.assertEqual(settings.url.host, "db.example.com")
        self.assertEqual(settings.connect_args, {"sslmode": "require"})
        self.assertEqual(settings.validation_query, "SELECT 1")
        self.assertEqual(settings.pool_timeout_seconds, 2.5)
        self.assertEqual(settings.pool_size, 8)
        self.assertEqual(settings.pool_type, "lifo")
        self.assertNotIn("secret", repr(settings))

    def test_bad_max_wait_is_ignored(self):
        settings = DataSourceSettings.from_properties(
            {"connectionUrl": "sqlite://", "maxWaitMillis": "soon"}, pool_size=1
        )
        self.assertIsNone(settings.pool_timeout_seconds)

        settings = DataSourceSettings.from_properties(
            {"connectionUrl": "sqlite://", "maxWaitMillis": "-1"}, pool_size=1
        )
        self.assertIsNone(settings.pool_timeout_seconds)


class TestSqlPoolSystem(unittest.TestCase):
    """Test the SQLAlchemy pool against a SQLite database file."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmpdir.name, "bench.db")

    def tearDown(self):
        self.tmpdir.cleanup()

    def _system(self, pool_size=2, **properties):
        properties.setdefault("connectionUrl", f"sqlite:///{self.db_path}")
        settings = DataSourceSettings.from_properties(properties, pool_size=pool_size)
        return SqlPoolSystem.from_settings(settings)

    def test_pool_is_fixed_size(self):
        engine = build_engine(DataSourceSettings.from_properties(
            {"connectionUrl": f"sqlite:///{self.db_path}"}, pool_size=3
        ))
        try:
            self.assertEqual(engine.pool.size(), 3)
            self.assertEqual(engine.pool._max_overflow, 0)
        finally:
            engine.dispose()

    def test_acquire_execute_release(self):
        with self._system() as system:
            handle = system.acquire()
            try:
                system.execute(handle, "CREATE TABLE items (id INTEGER)")
                system.execute(handle, "INSERT INTO items VALUES (1), (2), (3)")
                system.execute(handle, "SELECT id FROM items")
            finally:
                system.release(handle)

            handle = system.acquire()
            try:
                rows = handle.exec_driver_sql("SELECT COUNT(*) FROM items").scalar()
                self.assertEqual(rows, 3)
            finally:
                system.release(handle)

    def test_execute_failure_raises(self):
        with self._system() as system:
            handle = system.acquire()
            try:
                with self.assertRaises(OperationalError):
                    system.execute(handle, "SELECT * FROM no_such_table")
            finally:
                system.release(handle)

    def test_prefill(self):
        with self._system(pool_size=3) as system:
            self.assertEqual(system.prefill(3), 3)
            self.assertEqual(system.engine.pool.checkedin(), 3)

    def test_validation_query(self):
        with self._system(validationQuery="SELECT 1") as system:
            handle = system.acquire()
            system.release(handle)

    def test_failing_validation_query_fails_acquisition(self):
        with self._system(validationQuery="SELECT * FROM no_such_table") as system:
            with self.assertRaises(Exception):
                system.acquire()

    def test_benchmark_against_sqlite(self):
        stream = io.StringIO()
        with self._system(pool_size=2) as system:
            system.prefill(2)
            runner = BenchmarkRunner(system, "SELECT 1", threads=4, total_requests=20,
                                     connections=2, stream=stream)
            result = runner.run()

        self.assertEqual(result.success_count, 20)
        output = stream.getvalue()
        self.assertIn("Warning: threads (4) exceed pool size (2). This may cause contention.", output)
        self.assertIn("Successful requests: 20/20 (100.00%)", output)
        self.assertIn("Query execution:", output)


if __name__ == '__main__':
    unittest.main()
