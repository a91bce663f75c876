import os
import sys

# Ensure project root is in sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from outreach_desk.domain import ExternalSourceError, ProspectRow
from outreach_desk.infrastructure.persistence import InMemoryProspectStore, SqliteProspectStore
from outreach_desk.infrastructure.whatsapp import ConnectionState, MessagingProvider


class FakeProvider(MessagingProvider):
    """Messaging provider that records sends instead of talking to WhatsApp."""

    name = "fake"

    def __init__(self, ready=True, fail_for=(), raise_for=()):
        super().__init__()
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.sent = []
        if ready:
            self.connect()
            self.confirm_login()

    def connect(self):
        if self._state == ConnectionState.DISCONNECTED:
            self._transition(ConnectionState.AWAITING_CREDENTIAL)
        return True

    def confirm_login(self, timeout=30):
        if self._state == ConnectionState.AWAITING_CREDENTIAL:
            self._transition(ConnectionState.CONNECTED)
        return self.is_ready()

    def send(self, address, text):
        if address in self.raise_for:
            raise RuntimeError(f"socket closed for {address}")
        if address in self.fail_for:
            return False
        self.sent.append((address, text))
        return True

    def close(self):
        self._transition(ConnectionState.DISCONNECTED)


class FakeSource:
    """Spreadsheet source returning canned rows, or failing."""

    def __init__(self, rows=None, error=None):
        self.rows = list(rows or [])
        self.error = error
        self.calls = 0

    def fetch_rows(self):
        self.calls += 1
        if self.error:
            raise ExternalSourceError(self.error)
        return list(self.rows)

    def test_connection(self):
        return self.error is None


def row(name, category, phone, key=None):
    return ProspectRow(name=name, category=category, phone_number=phone, external_key=key)


@pytest.fixture
def store():
    return InMemoryProspectStore()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryProspectStore()
    return SqliteProspectStore(tmp_path / "prospects.db").init()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sleeps():
    return []
