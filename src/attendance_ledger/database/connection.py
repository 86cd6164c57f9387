from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

import mysql.connector

from .mysql_base import Transaction, transaction


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str


class TransactionManager(Protocol):
    """Anything that can open a unit of work shared by several repository calls."""

    def transaction(self) -> AbstractContextManager[Any]:
        raise NotImplementedError


class DatabaseConnection:
    """DB connection factory owned by the process entry point.

    Note: We create short-lived connections per unit of work (safe for simple Flask apps).
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def from_dict(cls, db_config: dict) -> "DatabaseConnection":
        return cls(
            DBConfig(
                host=str(db_config["host"]),
                port=int(db_config.get("port", 3306)),
                user=str(db_config["user"]),
                password=str(db_config["password"]),
                database=str(db_config["database"]),
            )
        )

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            autocommit=False,
        )

    def transaction(self) -> AbstractContextManager[Transaction]:
        return transaction(self)
