"""
Shared test fixtures for the Form 5500 search test suite.

No database is needed: FakeConnection / FakeCursor record every statement.
"""
import sys
import os
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = -1
        self.closed = False

    def execute(self, statement, params=None):
        if self.conn.fail_on and self.conn.fail_on in statement:
            raise RuntimeError(f"boom: {self.conn.fail_on}")
        self.conn.executed.append((statement, params))
        self.rowcount = self.conn.rowcount

    def copy_expert(self, statement, f):
        if self.conn.fail_on and self.conn.fail_on in statement:
            raise RuntimeError(f"boom: {self.conn.fail_on}")
        self.conn.copied.append((statement, f.read()))

    def fetchall(self):
        return list(self.conn.rows)

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, rows=None, fail_on=None, rowcount=0):
        self.rows = rows or []
        self.fail_on = fail_on
        self.rowcount = rowcount
        self.executed = []
        self.copied = []
        self.commits = 0
        self.rollbacks = 0
        self.cursors = []
        self.closed = False

    def cursor(self):
        cur = FakeCursor(self)
        self.cursors.append(cur)
        return cur

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True

    @property
    def statements(self):
        return [s for s, _ in self.executed]


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def make_conn():
    return FakeConnection


@pytest.fixture
def rk_csv(tmp_path):
    """Write a mapping CSV and return its path."""
    def _write(text, name="rk_mappings.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write
