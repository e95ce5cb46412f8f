import os
import unittest
from unittest.mock import patch

from calplanner.config import Settings, database_target, resolve_db_config

MANUAL_ENV = {
    "DB_HOST": "db.internal",
    "DB_USER": "planner",
    "DB_PASS": "secret",
    "DB_NAME": "planner_db",
}

PLATFORM_ENV = {
    "MYSQL_HOST": "mysql.platform",
    "MYSQL_USER": "root",
    "MYSQL_PASSWORD": "platform-secret",
    "MYSQL_DATABASE": "zeabur",
    "MYSQL_PORT": "31234",
}


def load_settings(env: dict) -> Settings:
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None)


class ResolveDbConfigTests(unittest.TestCase):
    def test_manual_group_wins_over_platform_group(self):
        settings = load_settings({**MANUAL_ENV, **PLATFORM_ENV})
        resolved = resolve_db_config(settings)
        self.assertIsNotNone(resolved)
        self.assertEqual(resolved.source, "manual")
        self.assertEqual(resolved.host, "db.internal")
        self.assertEqual(resolved.password, "secret")
        # Manual group borrows MYSQL_PORT when DB_PORT is unset.
        self.assertEqual(resolved.port, 31234)

    def test_platform_group_used_when_manual_incomplete(self):
        env = {**PLATFORM_ENV, "DB_HOST": "db.internal", "DB_USER": "planner"}
        resolved = resolve_db_config(load_settings(env))
        self.assertEqual(resolved.source, "platform")
        self.assertEqual(resolved.host, "mysql.platform")
        self.assertEqual(resolved.database, "zeabur")

    def test_default_port(self):
        resolved = resolve_db_config(load_settings(MANUAL_ENV))
        self.assertEqual(resolved.port, 3306)

    def test_db_port_overrides_mysql_port(self):
        env = {**MANUAL_ENV, "DB_PORT": "3307", "MYSQL_PORT": "31234"}
        self.assertEqual(resolve_db_config(load_settings(env)).port, 3307)

    def test_unresolved_when_no_group_is_complete(self):
        settings = load_settings({"MYSQL_HOST": "mysql.platform", "DB_USER": "x"})
        self.assertIsNone(resolve_db_config(settings))
        self.assertIsNone(database_target(settings))

    def test_url_targets_pymysql_with_utf8mb4(self):
        url = database_target(load_settings(MANUAL_ENV))
        self.assertEqual(url.drivername, "mysql+pymysql")
        self.assertEqual(url.query["charset"], "utf8mb4")
        self.assertEqual(url.host, "db.internal")
        self.assertEqual(url.database, "planner_db")

    def test_database_url_wins(self):
        env = {**MANUAL_ENV, "DATABASE_URL": "sqlite+pysqlite:///:memory:"}
        self.assertEqual(
            database_target(load_settings(env)), "sqlite+pysqlite:///:memory:"
        )

    def test_listen_port(self):
        self.assertEqual(load_settings({}).port, 8080)
        self.assertEqual(load_settings({"PORT": "9000"}).port, 9000)


if __name__ == "__main__":
    unittest.main()
