import oracledb
import pytest

from logminer_query.config import OracleConfig
from logminer_query.oracle_client import OracleClient

from .fakes import FakeConnection


@pytest.fixture
def fake_conn(monkeypatch):
    conn = FakeConnection()
    connect_calls = []

    def _connect(**kwargs):
        connect_calls.append(kwargs)
        return conn

    monkeypatch.setattr(oracledb, "connect", _connect)
    conn.connect_calls = connect_calls
    return conn


@pytest.fixture
def oracle_config():
    return OracleConfig(
        host="db.example.com",
        port="1521",
        service="ORCLPDB1",
        user="c##dbzuser",
        password="dbz",
    )


@pytest.fixture
def ora_client(fake_conn, oracle_config):
    return OracleClient(oracle_config)
