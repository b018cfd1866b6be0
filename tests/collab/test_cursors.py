"""
Tests for cursor and typing broadcasts.
"""

from unittest.mock import AsyncMock

import pytest

from intellicode.collab import events
from intellicode.collab.errors import AuthorizationError, PersistenceError
from intellicode.models.cursor import CursorPosition
from intellicode.schemas.realtime import CursorUpdatePayload, TypingPayload


def cursor(line, column, path="main.py"):
    return CursorUpdatePayload.model_validate({
        "projectId": "proj-1",
        "filePath": path,
        "position": {"line": line, "column": column},
    })


@pytest.fixture
async def pair(hub, connect, make_user, make_project):
    owner = make_user("Owner")
    viewer = make_user("Viewer")
    make_project(owner, project_id="proj-1", collaborators=[(viewer, "viewer")])
    a, b = connect(owner), connect(viewer)
    await hub.rooms.join(a, "proj-1")
    await hub.rooms.join(b, "proj-1")
    a._connection.clear()
    b._connection.clear()
    return a, b


class TestCursorUpdates:

    async def test_cursor_broadcast_to_others(self, hub, pair, frames):
        a, b = pair

        await hub.cursors.move(b, cursor(3, 7))

        updates = frames(a, events.CURSOR_UPDATE)
        assert len(updates) == 1
        assert updates[0]["data"]["position"] == {"line": 3, "column": 7}
        assert updates[0]["data"]["userId"] == b.user.id
        assert frames(b) == []

    async def test_cursor_row_overwritten(self, hub, pair, session_factory):
        _, b = pair

        await hub.cursors.move(b, cursor(1, 1))
        await hub.cursors.move(b, cursor(9, 2))

        with session_factory() as db:
            rows = db.query(CursorPosition).filter(CursorPosition.user_id == b.user.id).all()
            assert len(rows) == 1
            assert (rows[0].line, rows[0].column) == (9, 2)

    async def test_cursor_updates_presence(self, hub, pair):
        _, b = pair

        await hub.cursors.move(b, cursor(4, 0, path="lib/util.py"))

        entry = next(item for item in hub.presence.snapshot("proj-1") if item["userId"] == b.user.id)
        assert entry["filePath"] == "lib/util.py"
        assert entry["position"] == {"line": 4, "column": 0}

    async def test_persistence_failure_is_swallowed(self, hub, pair, frames, monkeypatch):
        a, b = pair
        monkeypatch.setattr(hub.store, "save_cursor", AsyncMock(side_effect=PersistenceError("db down")))

        await hub.dispatch(b, {
            "event": events.CURSOR_UPDATE,
            "data": {"projectId": "proj-1", "filePath": "main.py", "position": {"line": 0, "column": 0}},
        })

        assert len(frames(a, events.CURSOR_UPDATE)) == 1
        assert frames(b, events.ERROR) == []

    async def test_non_member_cursor_rejected(self, hub, pair, connect, make_user):
        stranger = connect(make_user("Stranger"))

        with pytest.raises(AuthorizationError):
            await hub.cursors.move(stranger, cursor(0, 0))

    async def test_negative_position_is_malformed(self, hub, pair, frames):
        a, b = pair

        await hub.dispatch(a, {
            "event": events.CURSOR_UPDATE,
            "data": {"projectId": "proj-1", "filePath": "main.py", "position": {"line": -1, "column": 0}},
        })

        assert frames(a, events.ERROR)[0]["data"]["event"] == events.CURSOR_UPDATE
        assert frames(b) == []


class TestTyping:

    @pytest.mark.parametrize("is_typing,event", [(True, events.TYPING_START), (False, events.TYPING_STOP)])
    async def test_typing_hint_broadcast_to_others(self, hub, pair, frames, is_typing, event):
        a, b = pair

        await hub.cursors.typing(a, TypingPayload.model_validate({"projectId": "proj-1", "filePath": "main.py"}), is_typing)

        assert frames(b, event) == [{
            "event": event,
            "data": {"projectId": "proj-1", "filePath": "main.py", "userId": a.user.id, "userName": "Owner"},
        }]
        assert frames(a) == []
