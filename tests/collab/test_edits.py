"""
Tests for the edit synchronization engine: authorization, upsert, fan-out.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from intellicode.collab import events
from intellicode.collab.edits import EditSynchronizer, FileWriteLocks
from intellicode.collab.errors import AuthorizationError, PersistenceError
from intellicode.models.project import Project, ProjectFile
from intellicode.schemas.realtime import EditUpdatePayload


def edit(project_id, path, content, **extra):
    return EditUpdatePayload.model_validate(dict({"projectId": project_id, "filePath": path, "content": content}, **extra))


@pytest.fixture
async def room(hub, connect, make_user, make_project):
    owner = make_user("Owner")
    editor = make_user("Editor")
    viewer = make_user("Viewer")
    make_project(owner, project_id="proj-1", collaborators=[(editor, "editor"), (viewer, "viewer")])
    sessions = {
        "owner": connect(owner),
        "editor": connect(editor),
        "viewer": connect(viewer),
    }
    for session in sessions.values():
        await hub.rooms.join(session, "proj-1")
    for session in sessions.values():
        session._connection.clear()
    return sessions


class TestEditFanOut:

    async def test_others_receive_update_author_does_not(self, hub, room, frames):
        await hub.edits.apply(room["editor"], edit("proj-1", "main.js", "console.log(1)"))

        for name in ("owner", "viewer"):
            updates = frames(room[name], events.EDIT_UPDATE)
            assert len(updates) == 1
            data = updates[0]["data"]
            assert data["filePath"] == "main.js"
            assert data["content"] == "console.log(1)"
            assert data["authorUserId"] == room["editor"].user.id
            assert data["timestamp"].endswith("Z")
        assert frames(room["editor"]) == []

    async def test_client_supplied_author_is_ignored(self, hub, room, frames):
        spoofed = edit("proj-1", "a.py", "x = 1", authorUserId=room["owner"].user.id)

        await hub.edits.apply(room["editor"], spoofed)

        data = frames(room["owner"], events.EDIT_UPDATE)[0]["data"]
        assert data["authorUserId"] == room["editor"].user.id
        assert data["authorName"] == "Editor"


class TestEditAuthorization:

    async def test_viewer_edit_rejected(self, hub, room, frames, db):
        with pytest.raises(AuthorizationError):
            await hub.edits.apply(room["viewer"], edit("proj-1", "x.py", "print(1)"))

        assert db.query(ProjectFile).count() == 0
        assert frames(room["owner"]) == []
        assert frames(room["editor"]) == []

    async def test_viewer_edit_via_hub_reports_error_to_viewer_only(self, hub, room, frames):
        await hub.dispatch(room["viewer"], {
            "event": events.EDIT_UPDATE,
            "data": {"projectId": "proj-1", "filePath": "x.py", "content": "print(1)"},
        })

        errors = frames(room["viewer"], events.ERROR)
        assert errors == [{"event": "error", "data": {"message": "Access denied to project", "event": "edit-update"}}]
        assert frames(room["owner"]) == []

    async def test_downgrade_takes_effect_mid_session(self, hub, room, set_role, session_factory):
        await hub.edits.apply(room["editor"], edit("proj-1", "a.py", "v1"))
        set_role("proj-1", room["editor"].user, "viewer")

        with pytest.raises(AuthorizationError):
            await hub.edits.apply(room["editor"], edit("proj-1", "a.py", "v2"))

        with session_factory() as db:
            assert db.query(ProjectFile).filter(ProjectFile.path == "a.py").one().content == "v1"

    async def test_edit_requires_joined_room(self, hub, connect, make_user, make_project, frames):
        owner = make_user("Solo")
        make_project(owner, project_id="solo")
        session = connect(owner)

        with pytest.raises(AuthorizationError, match="Join the project room first"):
            await hub.edits.apply(session, edit("solo", "a.py", "x"))


class TestEditPersistence:

    async def test_creates_file_with_language_and_byte_size(self, hub, room, session_factory):
        content = "print('héllo')\n"

        await hub.edits.apply(room["owner"], edit("proj-1", "x.py", content))

        with session_factory() as db:
            db_file = db.query(ProjectFile).filter(ProjectFile.project_id == "proj-1", ProjectFile.path == "x.py").one()
            assert db_file.language == "python"
            assert db_file.name == "x.py"
            assert db_file.content == content
            assert db_file.size == len(content.encode("utf-8"))
            assert db_file.size == len(content) + 1

    async def test_second_edit_overwrites_without_duplicate(self, hub, room, session_factory):
        await hub.edits.apply(room["owner"], edit("proj-1", "x.py", "a = 1"))
        await hub.edits.apply(room["editor"], edit("proj-1", "x.py", "a = 22"))

        with session_factory() as db:
            rows = db.query(ProjectFile).filter(ProjectFile.path == "x.py").all()
            assert len(rows) == 1
            assert rows[0].content == "a = 22"
            assert rows[0].size == 6

    async def test_unknown_extension_is_plaintext(self, hub, room, session_factory):
        await hub.edits.apply(room["owner"], edit("proj-1", "notes/TODO", "buy milk"))

        with session_factory() as db:
            assert db.query(ProjectFile).one().language == "plaintext"

    async def test_project_last_modified_bumped(self, hub, room, session_factory):
        before = datetime(2020, 1, 1)
        with session_factory() as db:
            db.query(Project).filter(Project.id == "proj-1").update({Project.last_modified: before})
            db.commit()

        await hub.edits.apply(room["owner"], edit("proj-1", "x.py", "pass"))

        with session_factory() as db:
            after = db.query(Project).filter(Project.id == "proj-1").one().last_modified
        assert after > before

    async def test_persistence_failure_suppresses_broadcast(self, hub, room, frames, monkeypatch):
        monkeypatch.setattr(hub.store, "save_file", AsyncMock(side_effect=PersistenceError("Failed to update code")))

        await hub.dispatch(room["editor"], {
            "event": events.EDIT_UPDATE,
            "data": {"projectId": "proj-1", "filePath": "x.py", "content": "boom"},
        })

        assert frames(room["editor"], events.ERROR)[0]["data"]["message"] == "Failed to update code"
        assert frames(room["owner"]) == []
        assert frames(room["viewer"]) == []


class TestFileWriteLocks:

    async def test_overlapping_writes_to_one_path_are_serialized(self):
        store = AsyncMock()
        store.can_access.return_value = True
        order = []

        async def slow_save(project_id, path, content):
            order.append(("start", content))
            await asyncio.sleep(0.05 if content == "first" else 0)
            order.append(("end", content))
            return {"id": "f", "path": path, "language": "python", "size": len(content)}

        store.save_file.side_effect = slow_save
        rooms = AsyncMock()
        rooms.require_member = lambda session, project_id: None
        session = AsyncMock()
        session.user.id = "u1"
        session.user.name = "U1"
        synchronizer = EditSynchronizer(rooms, store, serialize_writes=True)

        await asyncio.gather(
            synchronizer.apply(session, edit("p", "a.py", "first")),
            synchronizer.apply(session, edit("p", "a.py", "second")),
        )

        assert order == [("start", "first"), ("end", "first"), ("start", "second"), ("end", "second")]
        assert len(synchronizer.locks) == 0

    async def test_locks_are_per_path(self):
        locks = FileWriteLocks()
        entered = []

        async def writer(path):
            async with locks.hold("p", path):
                entered.append(path)
                await asyncio.sleep(0.01)

        await asyncio.gather(writer("a.py"), writer("b.py"))

        assert sorted(entered) == ["a.py", "b.py"]
        assert len(locks) == 0
