"""
Unit Tests for Session Table
============================

Registration, lookup, id correlation and removal of sessions.
"""

import uuid

import pytest

from zabbix_mcp.api.sse.errors import SessionLimitError
from zabbix_mcp.api.sse.session import Session, SessionChannel
from zabbix_mcp.api.sse.session_table import SessionTable, canonical_session_id


pytestmark = pytest.mark.unit


def new_session() -> Session:
    return Session(str(uuid.uuid4()))


class TestSessionTableBasics:
    """Test insert, lookup and removal."""

    def test_insert_and_get(self):
        """Test a registered session is found by its id."""
        table = SessionTable()
        session = new_session()

        table.insert(session)

        assert table.get(session.id) is session
        assert session.id in table
        assert len(table) == 1

    def test_insert_duplicate_rejected(self):
        """Test registering the same id twice fails and keeps the first entry."""
        table = SessionTable()
        session = new_session()
        table.insert(session)

        with pytest.raises(ValueError):
            table.insert(Session(session.id))

        assert table.get(session.id) is session
        assert len(table) == 1

    def test_insert_respects_limit(self):
        """Test a full table rejects inserts without partial registration."""
        table = SessionTable(max_sessions=2)
        table.insert(new_session())
        table.insert(new_session())
        extra = new_session()

        with pytest.raises(SessionLimitError) as exc_info:
            table.insert(extra)

        assert exc_info.value.limit == 2
        assert extra.id not in table
        assert len(table) == 2

    def test_remove_is_idempotent(self):
        """Test removing twice returns the session once then None."""
        table = SessionTable()
        session = new_session()
        table.insert(session)

        assert table.remove(session.id) is session
        assert table.remove(session.id) is None
        assert session.id not in table

    def test_get_unknown_returns_none(self):
        """Test exact lookup of an unknown id."""
        assert SessionTable().get("missing") is None

    def test_sessions_is_snapshot(self):
        """Test the listing can be iterated while sessions are removed."""
        table = SessionTable()
        sessions = [new_session() for _ in range(3)]
        for session in sessions:
            table.insert(session)

        for session in table.sessions():
            table.remove(session.id)

        assert len(table) == 0
        assert table.ids() == []


class TestSessionResolution:
    """Test correlating client-supplied ids with live sessions."""

    @pytest.fixture
    def table_with_session(self):
        table = SessionTable()
        session = new_session()
        table.insert(session)
        return table, session

    def test_resolve_exact(self, table_with_session):
        table, session = table_with_session
        assert table.resolve(session.id) is session

    @pytest.mark.parametrize(
        "spelling",
        [
            lambda sid: sid.upper(),
            lambda sid: sid.replace("-", ""),
            lambda sid: "{" + sid + "}",
            lambda sid: "urn:uuid:" + sid,
            lambda sid: "  " + sid + " ",
        ],
    )
    def test_resolve_alternate_uuid_spellings(self, table_with_session, spelling):
        """Test non-canonical spellings of the same UUID resolve to the session."""
        table, session = table_with_session
        assert table.resolve(spelling(session.id)) is session

    def test_resolve_by_channel_id(self):
        """Test a session is found through the id its channel tracks."""
        table = SessionTable()
        session = Session("session-1", channel=SessionChannel("channel-abc"))
        table.insert(session)

        assert table.resolve("channel-abc") is session

    def test_resolve_unknown(self, table_with_session):
        table, _ = table_with_session
        assert table.resolve(str(uuid.uuid4())) is None
        assert table.resolve("not-a-session") is None
        assert table.resolve("") is None

    def test_canonical_session_id(self):
        value = uuid.uuid4()
        assert canonical_session_id(value.hex.upper()) == str(value)
        assert canonical_session_id("nope") is None
