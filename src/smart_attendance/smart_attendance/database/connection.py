from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connect_timeout: int = 10

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
            connect_timeout=int(db_config.get("connect_timeout", 10)),
        )


class DatabaseConnection:
    """Shared connection factory; one short-lived connection per unit of work.

    get_instance() hands back the shared factory, replacing it when called
    with a different config (scripts and the app may target different DBs).
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance.config != config:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        # DATETIME(6) columns round-trip as naive UTC; pin the session zone
        conn = mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            charset="utf8mb4",
            connection_timeout=self._config.connect_timeout,
        )
        cur = conn.cursor()
        try:
            cur.execute("SET time_zone = '+00:00'")
        finally:
            cur.close()
        return conn
