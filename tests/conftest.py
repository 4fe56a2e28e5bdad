"""Shared pytest fixtures: a seeded SQLite file, a browser over it, and an API client.

The schema covers every introspection edge the browser cares about: an
AUTOINCREMENT key (so ``sqlite_sequence`` exists), a single-column UNIQUE,
a composite UNIQUE, a foreign key, a CHECK constraint and a BLOB column.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from sqliter.browser import SQLiteBrowser
from sqliter.server.app import create_app
from sqliter.shared import paths
from sqliter.shared.config import ServerSettings, load_config

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    age INTEGER
);
CREATE TABLE orders (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id),
    total REAL DEFAULT 0
);
CREATE TABLE memberships (
    user_id INTEGER NOT NULL,
    group_name TEXT NOT NULL,
    UNIQUE (user_id, group_name)
);
CREATE TABLE files (
    id INTEGER PRIMARY KEY,
    name TEXT,
    payload BLOB
);
CREATE TABLE scores (
    id INTEGER PRIMARY KEY,
    value INTEGER CHECK (value >= 0),
    active BOOLEAN
);
"""

SEED = """
INSERT INTO users (name, email, age) VALUES
    ('John Doe', 'john@example.com', 30),
    ('Jane Smith', 'jane@example.com', 25);
INSERT INTO orders (id, user_id, total) VALUES (1, 1, 19.5);
INSERT INTO memberships (user_id, group_name) VALUES (1, 'admins'), (2, 'admins');
INSERT INTO files (id, name, payload) VALUES (1, 'logo', X'DEADBEEF');
INSERT INTO scores (id, value, active) VALUES (1, 10, 1), (2, 20, 0), (3, 30, 'true');
"""


def make_database(path: Path, *, seed: bool = True) -> Path:
    connection = sqlite3.connect(path)
    try:
        connection.executescript(SCHEMA)
        if seed:
            connection.executescript(SEED)
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return make_database(tmp_path / "sample.db")


@pytest.fixture()
def browser(db_path: Path) -> Iterator[SQLiteBrowser]:
    instance = SQLiteBrowser(db_path)
    try:
        yield instance
    finally:
        instance.close()


@pytest.fixture()
def server_settings(tmp_path: Path) -> ServerSettings:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    return load_config(env=env).server


@pytest.fixture()
def client(browser: SQLiteBrowser, server_settings: ServerSettings) -> Iterator[TestClient]:
    app = create_app(browser, server_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def database_factory() -> Callable[..., Path]:
    """Return ``make_database`` for tests that need a second or unseeded file."""
    return make_database
