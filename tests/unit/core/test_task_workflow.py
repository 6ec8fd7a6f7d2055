"""Tests for task statuses and the task service."""

import io

import pytest
from fastapi import UploadFile

from backoffice.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from backoffice.core.tasks import (
    AssignmentStatus,
    TaskService,
    TaskStatus,
    can_user_set_status,
)
from backoffice.core.tasks.service import SCOPE_ACTIVE, SCOPE_ARCHIVED
from backoffice.core.tasks.states import (
    is_active_for_admin,
    is_active_for_user,
    is_archived_for_admin,
    is_archived_for_user,
)
from backoffice.db.models import Task, TaskAssignment, TaskFile
from tests.factories import (
    create_admin,
    create_director,
    create_task,
    create_task_file,
    create_user,
    set_assignment_status,
)


def _upload(name="report.txt", body=b"hello"):
    return UploadFile(file=io.BytesIO(body), filename=name)


class TestTaskStates:
    """The two status axes."""

    def test_user_settable_statuses(self):
        assert can_user_set_status("in_progress")
        assert can_user_set_status("completed")
        assert not can_user_set_status("assigned")
        assert not can_user_set_status("closed")

    def test_user_side(self):
        assert is_active_for_user("assigned")
        assert is_active_for_user("in_progress")
        assert is_archived_for_user("completed")
        assert not is_archived_for_user("in_progress")

    def test_admin_side(self):
        assert is_archived_for_admin(["completed", "completed"])
        assert not is_archived_for_admin(["completed", "in_progress"])
        assert not is_archived_for_admin([])
        assert is_active_for_admin([])
        assert is_active_for_admin(["completed", "assigned"])

    def test_task_status_values(self):
        assert [s.value for s in TaskStatus] == ["open", "in_progress", "completed", "closed"]
        assert [s.value for s in AssignmentStatus] == ["assigned", "in_progress", "completed"]


class TestTaskLifecycle:

    def test_create_with_assignees(self, db_session):
        admin = create_admin(db_session)
        alice = create_user(db_session)
        bob = create_user(db_session)

        task = TaskService(db_session).create(
            title="Quarterly report",
            creator=admin,
            assigned_user_ids=[alice.id, bob.id, alice.id],
        )

        assert task.status == "open"
        assert task.created_by == admin.id
        assert sorted(a.user_id for a in task.assignments) == sorted([alice.id, bob.id])
        assert all(a.status == "assigned" for a in task.assignments)

    def test_create_with_unknown_user(self, db_session):
        admin = create_admin(db_session)
        with pytest.raises(NotFoundError):
            TaskService(db_session).create(title="x", creator=admin, assigned_user_ids=[9999])
        assert db_session.query(Task).count() == 0

    def test_update_any_status(self, db_session):
        task = create_task(db_session, creator=create_admin(db_session))
        updated = TaskService(db_session).update(task.id, status="closed", title="Renamed")
        assert updated.status == "closed"
        assert updated.title == "Renamed"

    def test_update_invalid_status(self, db_session):
        task = create_task(db_session, creator=create_admin(db_session))
        with pytest.raises(BadRequestError):
            TaskService(db_session).update(task.id, status="done")

    def test_assign_is_idempotent(self, db_session):
        task = create_task(db_session, creator=create_admin(db_session))
        user = create_user(db_session)
        service = TaskService(db_session)

        first = service.assign(task.id, user.id)
        second = service.assign(task.id, user.id)
        assert first.id == second.id
        assert db_session.query(TaskAssignment).count() == 1

    def test_remove_user(self, db_session):
        user = create_user(db_session)
        task = create_task(db_session, creator=create_admin(db_session), assignees=[user])
        service = TaskService(db_session)

        service.remove_user(task.id, user.id)
        assert service.get_assignment(task.id, user.id) is None
        with pytest.raises(NotFoundError):
            service.remove_user(task.id, user.id)

    def test_delete_removes_files(self, db_session, storage):
        admin = create_admin(db_session)
        task = create_task(db_session, creator=admin)
        task_file = create_task_file(db_session, task=task, uploader=admin, storage=storage)

        TaskService(db_session, storage).delete(task.id)

        assert db_session.query(Task).count() == 0
        assert db_session.query(TaskFile).count() == 0
        assert not storage.exists(task_file.file_path)


class TestAssigneeStatus:

    def test_move_to_in_progress_and_completed(self, db_session):
        user = create_user(db_session)
        task = create_task(db_session, creator=create_admin(db_session), assignees=[user])
        service = TaskService(db_session)

        assert service.update_own_status(task.id, user, "in_progress").status == "in_progress"
        assert service.update_own_status(task.id, user, "completed").status == "completed"

    def test_cannot_go_back_to_assigned(self, db_session):
        user = create_user(db_session)
        task = create_task(db_session, creator=create_admin(db_session), assignees=[user])

        with pytest.raises(BadRequestError):
            TaskService(db_session).update_own_status(task.id, user, "assigned")

    def test_not_assigned(self, db_session):
        user = create_user(db_session)
        task = create_task(db_session, creator=create_admin(db_session))

        with pytest.raises(ForbiddenError, match="not assigned"):
            TaskService(db_session).update_own_status(task.id, user, "completed")


class TestActiveArchived:
    """The same task can be archived for one side and active for the other."""

    def test_user_scopes(self, db_session):
        admin = create_admin(db_session)
        user = create_user(db_session)
        open_task = create_task(db_session, creator=admin, assignees=[user])
        done_task = create_task(db_session, creator=admin, assignees=[user])
        set_assignment_status(db_session, done_task, user, "completed")
        service = TaskService(db_session)

        active, _ = service.list_for_user(user, scope=SCOPE_ACTIVE)
        archived, _ = service.list_for_user(user, scope=SCOPE_ARCHIVED)
        assert [a.task_id for a in active] == [open_task.id]
        assert [a.task_id for a in archived] == [done_task.id]

    def test_admin_scopes(self, db_session):
        admin = create_admin(db_session)
        alice = create_user(db_session)
        bob = create_user(db_session)
        empty = create_task(db_session, creator=admin)
        mixed = create_task(db_session, creator=admin, assignees=[alice, bob])
        finished = create_task(db_session, creator=admin, assignees=[alice, bob])
        set_assignment_status(db_session, mixed, alice, "completed")
        set_assignment_status(db_session, finished, alice, "completed")
        set_assignment_status(db_session, finished, bob, "completed")
        service = TaskService(db_session)

        active, total_active = service.list_for_admin(admin, scope=SCOPE_ACTIVE)
        archived, total_archived = service.list_for_admin(admin, scope=SCOPE_ARCHIVED)

        assert {s.task.id for s in active} == {empty.id, mixed.id}
        assert total_active == 2
        assert [s.task.id for s in archived] == [finished.id]
        assert total_archived == 1

        # Alice is done with "mixed" even though the admin still sees it as active
        alice_archived, _ = service.list_for_user(alice, scope=SCOPE_ARCHIVED)
        assert {a.task_id for a in alice_archived} == {mixed.id, finished.id}

    def test_admin_counts(self, db_session):
        admin = create_admin(db_session)
        alice = create_user(db_session)
        bob = create_user(db_session)
        task = create_task(db_session, creator=admin, assignees=[alice, bob])
        set_assignment_status(db_session, task, bob, "completed")
        create_task_file(db_session, task=task, uploader=admin)

        summaries, _ = TaskService(db_session).list_for_admin(admin)
        summary = summaries[0]
        assert summary.assigned_users_count == 2
        assert summary.completed_users_count == 1
        assert summary.files_count == 1

    def test_director_sees_only_own_tasks(self, db_session):
        admin = create_admin(db_session)
        director = create_director(db_session)
        own = create_task(db_session, creator=director)
        create_task(db_session, creator=admin)

        summaries, total = TaskService(db_session).list_for_admin(director)
        assert total == 1
        assert summaries[0].task.id == own.id

    def test_unknown_scope(self, db_session):
        with pytest.raises(BadRequestError):
            TaskService(db_session).list_for_admin(create_admin(db_session), scope="later")


class TestTaskFiles:
    """Assignees see admin uploads and their own, never each other's."""

    def test_visible_files(self, db_session):
        admin = create_admin(db_session)
        alice = create_user(db_session)
        bob = create_user(db_session)
        task = create_task(db_session, creator=admin, assignees=[alice, bob])
        brief = create_task_file(db_session, task=task, uploader=admin)
        alice_file = create_task_file(db_session, task=task, uploader=alice)
        bob_file = create_task_file(db_session, task=task, uploader=bob)
        service = TaskService(db_session)

        assert {f.id for f in service.visible_files(task.id, alice)} == {brief.id, alice_file.id}
        assert {f.id for f in service.visible_files(task.id, admin)} == {
            brief.id, alice_file.id, bob_file.id,
        }
        assert not service.can_see_file(bob_file, alice)

    def test_assignee_upload(self, db_session, storage):
        alice = create_user(db_session)
        task = create_task(db_session, creator=create_admin(db_session), assignees=[alice])

        task_file = TaskService(db_session, storage).add_file(task.id, _upload(), alice)
        assert task_file.file_name == "report.txt"
        assert task_file.uploaded_by == alice.id
        assert storage.exists(task_file.file_path)

    def test_upload_requires_assignment(self, db_session, storage):
        stranger = create_user(db_session)
        task = create_task(db_session, creator=create_admin(db_session))

        with pytest.raises(ForbiddenError):
            TaskService(db_session, storage).add_file(task.id, _upload(), stranger)

    def test_assignee_deletes_only_own_files(self, db_session, storage):
        admin = create_admin(db_session)
        alice = create_user(db_session)
        task = create_task(db_session, creator=admin, assignees=[alice])
        brief = create_task_file(db_session, task=task, uploader=admin, storage=storage)
        own = create_task_file(db_session, task=task, uploader=alice, storage=storage)
        service = TaskService(db_session, storage)

        with pytest.raises(ForbiddenError):
            service.delete_file(brief.id, alice)
        service.delete_file(own.id, alice)
        assert not storage.exists(own.file_path)

    def test_download_rules(self, db_session, storage):
        admin = create_admin(db_session)
        alice = create_user(db_session)
        bob = create_user(db_session)
        task = create_task(db_session, creator=admin, assignees=[alice, bob])
        bob_file = create_task_file(db_session, task=task, uploader=bob, storage=storage)
        missing = create_task_file(db_session, task=task, uploader=admin)
        service = TaskService(db_session, storage)

        assert service.file_for_download(bob_file.id, admin).id == bob_file.id
        with pytest.raises(ForbiddenError):
            service.file_for_download(bob_file.id, alice)
        with pytest.raises(NotFoundError, match="on server"):
            service.file_for_download(missing.id, admin)

    def test_files_uploaded_by(self, db_session):
        admin = create_admin(db_session)
        task = create_task(db_session, creator=admin)
        create_task_file(db_session, task=task, uploader=admin)
        create_task_file(db_session, task=task, uploader=admin)

        files, total = TaskService(db_session).files_uploaded_by(admin, limit=1)
        assert total == 2
        assert len(files) == 1
