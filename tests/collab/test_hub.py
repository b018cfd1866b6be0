"""
Tests for the collaboration hub: handshake, event dispatch, error routing.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from intellicode.collab import events
from intellicode.collab.errors import AuthenticationError, PersistenceError
from intellicode.collab.gatekeeper import extract_bearer_token
from intellicode.core.security import create_access_token


class TestHandshake:

    async def test_valid_token_yields_session_with_no_rooms(self, hub, make_user, token_for, fake_connection):
        user = make_user("Ada", avatar="https://example.com/ada.png")

        session = await hub.connect(fake_connection(), token_for(user))

        assert session.user == user
        assert session.joined_rooms == frozenset()
        assert hub.rooms.rooms() == []

    @pytest.mark.parametrize("token,message", [
        (None, "Authentication error: No token provided"),
        ("", "Authentication error: No token provided"),
        ("not-a-jwt", "Authentication error: Invalid token"),
    ])
    async def test_missing_or_garbled_token_rejected(self, hub, token, message, fake_connection):
        with pytest.raises(AuthenticationError) as exc_info:
            await hub.connect(fake_connection(), token)

        assert exc_info.value.message == message

    async def test_expired_token_rejected(self, hub, make_user, fake_connection):
        user = make_user()
        token = create_access_token(user.id, expires_delta=timedelta(minutes=-5))

        with pytest.raises(AuthenticationError, match="Invalid token"):
            await hub.connect(fake_connection(), token)

    async def test_unknown_user_rejected(self, hub, fake_connection):
        with pytest.raises(AuthenticationError, match="User not found"):
            await hub.connect(fake_connection(), create_access_token("ghost"))

    async def test_store_failure_fails_closed(self, hub, make_user, token_for, monkeypatch, fake_connection):
        user = make_user()
        monkeypatch.setattr(hub.store, "get_user", AsyncMock(side_effect=PersistenceError("Failed to load user")))

        with pytest.raises(AuthenticationError, match="Unable to verify user"):
            await hub.connect(fake_connection(), token_for(user))

    @pytest.mark.parametrize("query,header,expected", [
        ("abc", None, "abc"),
        (None, "Bearer xyz", "xyz"),
        (None, "bearer   xyz  ", "xyz"),
        ("abc", "Bearer xyz", "abc"),
        (None, "Basic Zm9v", None),
        (None, "Bearer ", None),
        (None, None, None),
    ])
    def test_extract_bearer_token(self, query, header, expected):
        assert extract_bearer_token(query, header) == expected


class TestDispatch:

    @pytest.fixture
    async def owner(self, hub, connect, make_user, make_project):
        user = make_user("Owner")
        make_project(user, project_id="proj-1")
        return connect(user)

    async def test_invalid_json(self, hub, owner, frames):
        await hub.dispatch_raw(owner, "{not json")

        assert frames(owner) == [{"event": "error", "data": {"message": "Malformed event: invalid JSON"}}]

    async def test_non_object_frame(self, hub, owner, frames):
        await hub.dispatch_raw(owner, "[1, 2, 3]")

        assert frames(owner, events.ERROR)[0]["data"]["message"].startswith("Malformed event")

    async def test_unknown_event(self, hub, owner, frames):
        await hub.dispatch(owner, {"event": "launch-missiles", "data": {}})

        assert frames(owner) == [{
            "event": "error",
            "data": {"message": "Unknown event: launch-missiles", "event": "launch-missiles"},
        }]

    async def test_missing_field_is_malformed(self, hub, owner, frames):
        await hub.dispatch(owner, {"event": events.EDIT_UPDATE, "data": {"projectId": "proj-1", "content": "x"}})

        error = frames(owner, events.ERROR)[0]["data"]
        assert error["event"] == events.EDIT_UPDATE
        assert "filePath" in error["message"]

    async def test_bare_project_id_joins(self, hub, owner, frames):
        await hub.dispatch_raw(owner, '{"event": "join-room", "data": "proj-1"}')

        assert owner.joined_rooms == frozenset({"proj-1"})
        assert len(frames(owner, events.COLLABORATORS_SNAPSHOT)) == 1

    async def test_leave_room_event(self, hub, owner):
        await hub.dispatch(owner, {"event": events.JOIN_ROOM, "data": {"projectId": "proj-1"}})
        await hub.dispatch(owner, {"event": events.LEAVE_ROOM, "data": {"projectId": "proj-1"}})

        assert owner.joined_rooms == frozenset()
        assert hub.rooms.rooms() == []

    async def test_unexpected_error_reported_to_requester_only(self, hub, owner, frames, monkeypatch):
        await hub.dispatch(owner, {"event": events.JOIN_ROOM, "data": "proj-1"})
        owner._connection.clear()
        monkeypatch.setattr(hub.store, "create_chat_message", AsyncMock(side_effect=RuntimeError("boom")))

        await hub.dispatch(owner, {"event": events.CHAT_MESSAGE, "data": {"projectId": "proj-1", "text": "hi"}})

        assert frames(owner) == [{
            "event": "error",
            "data": {"message": "Failed to process event", "event": events.CHAT_MESSAGE},
        }]

    async def test_session_survives_errors(self, hub, owner, frames):
        await hub.dispatch_raw(owner, "garbage")
        await hub.dispatch(owner, {"event": events.JOIN_ROOM, "data": {"projectId": "proj-1"}})

        assert owner.joined_rooms == frozenset({"proj-1"})
