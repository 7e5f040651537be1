"""Schema bootstrap and demo data for local setups.

Used by the app factory (AUTO_INIT_DB / AUTO_SEED_DB) and scripts/.
"""
from __future__ import annotations

import json
import re
import uuid
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

_DEFAULTS = {"host": "localhost", "port": 3306, "user": "root", "password": "", "database": "smart_attendance"}


def _as_target(db_config: dict) -> DBConfig:
    return DBConfig.from_dict({**_DEFAULTS, **db_config})


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a schema file on ';' outside quotes; drops '--' comment lines."""
    buf: list[str] = []
    quote = ""

    for line in sql.splitlines(keepends=True):
        if not quote and line.lstrip().startswith("--"):
            continue
        for ch in line:
            if quote:
                buf.append(ch)
                if ch == quote:
                    quote = ""
                continue
            if ch in ("'", '"'):
                quote = ch
                buf.append(ch)
                continue
            if ch == ";":
                stmt = "".join(buf).strip()
                buf.clear()
                if stmt:
                    yield stmt
                continue
            buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_demo_student(
    db_config: dict,
    *,
    roll_number: str = "CS-2024-001",
    name: str = "Asha Verma",
    email: str = "asha.verma@example.com",
    password: str = "Student123",
) -> None:
    """Create (or refresh) a demo account and its student profile."""
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        password_hash = generate_password_hash(password)
        attributes = json.dumps({"roll_number": roll_number, "name": name})

        cur.execute("SELECT user_id FROM accounts WHERE email=%s", (email,))
        existing = cur.fetchone()
        if existing:
            user_id = existing["user_id"]
            cur.execute(
                "UPDATE accounts SET password_hash=%s, attributes=%s WHERE user_id=%s",
                (password_hash, attributes, user_id),
            )
        else:
            user_id = str(uuid.uuid4())
            cur.execute(
                "INSERT INTO accounts (user_id, email, password_hash, attributes) VALUES (%s, %s, %s, %s)",
                (user_id, email, password_hash, attributes),
            )

        cur.execute(
            """
            INSERT INTO students (student_id, user_id, roll_number, name, email)
            VALUES (%s, %s, %s, %s, %s)
            ON DUPLICATE KEY UPDATE user_id=VALUES(user_id), name=VALUES(name), email=VALUES(email)
            """,
            (str(uuid.uuid4()), user_id, roll_number, name, email),
        )
        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
