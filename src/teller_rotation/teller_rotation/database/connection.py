from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector

_ISOLATION_LEVELS = {"READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"}


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    # Under READ COMMITTED, racing inserts of one (day_key, teller_id) fail with a duplicate key, not a gap-lock deadlock.
    isolation_level: str = "READ COMMITTED"


class DatabaseConnection:
    """Singleton-like DB connection factory.

    Note: Every repository call opens its own short-lived connection and
    transaction, so concurrent operator sessions never share one.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        level = config.isolation_level.upper()
        if level not in _ISOLATION_LEVELS:
            raise ValueError(f"Unsupported isolation level: {config.isolation_level!r}")
        self._config = config
        self._isolation_level = level

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @classmethod
    def from_dict(cls, db_config: dict) -> "DatabaseConnection":
        return cls.get_instance(
            DBConfig(
                host=str(db_config["host"]),
                port=int(db_config.get("port", 3306)),
                user=str(db_config["user"]),
                password=str(db_config["password"]),
                database=str(db_config["database"]),
                isolation_level=str(db_config.get("isolation_level", "READ COMMITTED")),
            )
        )

    @property
    def isolation_level(self) -> str:
        return self._isolation_level

    def connect(self):
        conn = mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            autocommit=False,
        )
        cur = conn.cursor()
        try:
            cur.execute(f"SET SESSION TRANSACTION ISOLATION LEVEL {self._isolation_level}")
        finally:
            cur.close()
        return conn
