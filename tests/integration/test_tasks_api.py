"""Tests for the task endpoints."""

import pytest

from backoffice.db.models import Task, TaskAssignment, TaskFile
from tests.factories import (
    create_admin,
    create_director,
    create_group,
    create_task,
    create_task_file,
    create_user,
    set_assignment_status,
)

pytestmark = pytest.mark.integration

API = "/api/v1/tasks"


@pytest.fixture
def people(db_session):
    group = create_group(db_session)
    return {
        "admin": create_admin(db_session),
        "alice": create_user(db_session, name="Alice", groups=[group]),
        "bob": create_user(db_session, name="Bob", groups=[group]),
        "carol": create_user(db_session, name="Carol", groups=[group]),
    }


class TestAdminTasks:

    def test_create_with_assignees(self, client, db_session, people, auth_headers):
        response = client.post(
            f"{API}/admin/create",
            headers=auth_headers(people["admin"]),
            json={
                "title": "Quarterly report",
                "description": "Collect numbers",
                "assignedUserIds": [people["alice"].id, people["bob"].id],
            },
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "open"
        assert data["creatorName"] == people["admin"].name

        statuses = {a.status for a in db_session.query(TaskAssignment).filter_by(task_id=data["id"])}
        assert statuses == {"assigned"}

    def test_create_with_unknown_assignee(self, client, db_session, people, auth_headers):
        response = client.post(
            f"{API}/admin/create",
            headers=auth_headers(people["admin"]),
            json={"title": "Ghost", "assignedUserIds": [99999]},
        )
        assert response.status_code == 404
        assert db_session.query(Task).count() == 0

    def test_list_counts(self, client, db_session, people, auth_headers, storage):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"], people["bob"]])
        set_assignment_status(db_session, task, people["alice"], "completed")
        create_task_file(db_session, task=task, uploader=people["admin"], storage=storage)

        data = client.get(f"{API}/admin/all", headers=auth_headers(people["admin"])).json()["data"]
        row = data["tasks"][0]
        assert row["assignedUsersCount"] == 2
        assert row["completedUsersCount"] == 1
        assert row["filesCount"] == 1

    def test_archived_when_every_assignee_completed(self, client, db_session, people, auth_headers):
        unassigned = create_task(db_session, creator=people["admin"])
        partial = create_task(db_session, creator=people["admin"], assignees=[people["alice"], people["bob"]])
        done = create_task(db_session, creator=people["admin"], assignees=[people["alice"]],
                           assignment_status="completed")
        set_assignment_status(db_session, partial, people["alice"], "completed")
        headers = auth_headers(people["admin"])

        active = client.get(f"{API}/admin/active-tasks", headers=headers).json()["data"]["tasks"]
        archived = client.get(f"{API}/admin/archived-tasks", headers=headers).json()["data"]["tasks"]
        assert {t["id"] for t in active} == {unassigned.id, partial.id}
        assert [t["id"] for t in archived] == [done.id]

    def test_director_sees_own_tasks(self, client, db_session, people, auth_headers):
        director = create_director(db_session)
        mine = create_task(db_session, creator=director)
        create_task(db_session, creator=people["admin"])

        data = client.get(f"{API}/admin/all", headers=auth_headers(director)).json()["data"]
        assert [t["id"] for t in data["tasks"]] == [mine.id]

    def test_update_status_and_delete(self, client, db_session, people, auth_headers, storage):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"]])
        task_file = create_task_file(db_session, task=task, uploader=people["admin"], storage=storage)
        headers = auth_headers(people["admin"])

        updated = client.put(f"{API}/admin/{task.id}", headers=headers, json={"status": "closed"})
        assert updated.json()["data"]["status"] == "closed"

        bad = client.put(f"{API}/admin/{task.id}", headers=headers, json={"status": "paused"})
        assert bad.status_code == 400

        assert client.delete(f"{API}/admin/{task.id}", headers=headers).status_code == 200
        assert db_session.query(TaskAssignment).count() == 0
        assert db_session.query(TaskFile).count() == 0
        assert not storage.exists(task_file.file_path)

    def test_assign_is_idempotent_and_remove(self, client, db_session, people, auth_headers):
        task = create_task(db_session, creator=people["admin"])
        headers = auth_headers(people["admin"])
        url = f"{API}/admin/{task.id}/assign"

        assert client.post(url, headers=headers, json={"userId": people["carol"].id}).status_code == 200
        assert client.post(url, headers=headers, json={"userId": people["carol"].id}).status_code == 200
        users = client.get(f"{API}/admin/{task.id}/users", headers=headers).json()["data"]
        assert [u["userId"] for u in users] == [people["carol"].id]

        removed = client.delete(f"{API}/admin/{task.id}/user/{people['carol'].id}", headers=headers)
        assert removed.status_code == 200
        again = client.delete(f"{API}/admin/{task.id}/user/{people['carol'].id}", headers=headers)
        assert again.status_code == 404

    def test_missing_task(self, client, people, auth_headers):
        response = client.get(f"{API}/admin/9999/detail", headers=auth_headers(people["admin"]))
        assert response.status_code == 404
        assert response.json()["message"] == "Task not found"

    def test_users_cannot_use_admin_routes(self, client, people, auth_headers):
        response = client.get(f"{API}/admin/all", headers=auth_headers(people["alice"]))
        assert response.status_code == 401


class TestAssigneeTasks:

    def test_status_changes(self, client, db_session, people, auth_headers):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"], people["bob"]])
        headers = auth_headers(people["alice"])
        url = f"{API}/user/{task.id}/status"

        started = client.put(url, headers=headers, json={"status": "in_progress"})
        assert started.status_code == 200
        assert started.json()["data"]["status"] == "in_progress"

        back = client.put(url, headers=headers, json={"status": "assigned"})
        assert back.status_code == 400

        assert client.put(url, headers=headers, json={"status": "completed"}).status_code == 200

        # Bob's row is untouched
        bob_row = db_session.query(TaskAssignment).filter_by(task_id=task.id, user_id=people["bob"].id).one()
        assert bob_row.status == "assigned"

    def test_not_assigned(self, client, db_session, people, auth_headers):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"]])
        headers = auth_headers(people["carol"])

        detail = client.get(f"{API}/user/{task.id}", headers=headers)
        assert detail.status_code == 403
        assert detail.json()["message"] == "You are not assigned to this task"

        status_change = client.put(f"{API}/user/{task.id}/status", headers=headers, json={"status": "completed"})
        assert status_change.status_code == 403

    def test_active_and_archived_views(self, client, db_session, people, auth_headers):
        """The same task is archived for Alice while still active for the admin."""
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"], people["bob"]])
        set_assignment_status(db_session, task, people["alice"], "completed")

        alice = auth_headers(people["alice"])
        assert client.get(f"{API}/user/active-tasks", headers=alice).json()["data"]["tasks"] == []
        archived = client.get(f"{API}/user/archived-tasks", headers=alice).json()["data"]["tasks"]
        assert [t["userStatus"] for t in archived] == ["completed"]

        admin_active = client.get(f"{API}/admin/active-tasks", headers=auth_headers(people["admin"]))
        assert [t["id"] for t in admin_active.json()["data"]["tasks"]] == [task.id]

    def test_detail_hides_other_assignees_files(self, client, db_session, people, auth_headers, storage):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"], people["bob"]])
        brief = create_task_file(db_session, task=task, uploader=people["admin"], storage=storage)
        own = create_task_file(db_session, task=task, uploader=people["alice"], storage=storage)
        other = create_task_file(db_session, task=task, uploader=people["bob"], storage=storage)

        detail = client.get(f"{API}/user/{task.id}", headers=auth_headers(people["alice"])).json()["data"]
        assert detail["userStatus"] == "assigned"
        assert {f["id"] for f in detail["files"]} == {brief.id, own.id}

        admin_detail = client.get(
            f"{API}/admin/{task.id}/detail", headers=auth_headers(people["admin"])
        ).json()["data"]
        assert {f["id"] for f in admin_detail["files"]} == {brief.id, own.id, other.id}
        assert len(admin_detail["assignees"]) == 2

    def test_upload_and_delete_own_file(self, client, db_session, people, auth_headers, storage):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"]])
        headers = auth_headers(people["alice"])

        uploaded = client.post(
            f"{API}/user/{task.id}/upload-file",
            headers=headers,
            files={"file": ("answer.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert uploaded.status_code == 201
        data = uploaded.json()["data"]
        assert data["fileName"] == "answer.pdf"
        assert storage.exists(data["filePath"])

        deleted = client.delete(f"{API}/user/file/{data['id']}", headers=headers)
        assert deleted.status_code == 200
        assert not storage.exists(data["filePath"])

    def test_cannot_delete_admin_file(self, client, db_session, people, auth_headers, storage):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"]])
        brief = create_task_file(db_session, task=task, uploader=people["admin"], storage=storage)

        response = client.delete(f"{API}/user/file/{brief.id}", headers=auth_headers(people["alice"]))
        assert response.status_code == 403
        assert storage.exists(brief.file_path)

    def test_upload_requires_assignment(self, client, db_session, people, auth_headers):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"]])
        response = client.post(
            f"{API}/user/{task.id}/upload-file",
            headers=auth_headers(people["carol"]),
            files={"file": ("x.txt", b"x", "text/plain")},
        )
        assert response.status_code == 403


class TestFileDownload:

    def test_visibility(self, client, db_session, people, auth_headers, storage):
        task = create_task(db_session, creator=people["admin"], assignees=[people["alice"], people["bob"]])
        brief = create_task_file(db_session, task=task, uploader=people["admin"],
                                 file_name="brief.txt", storage=storage, content=b"brief")
        bobs = create_task_file(db_session, task=task, uploader=people["bob"], storage=storage)
        alice = auth_headers(people["alice"])

        response = client.get(f"{API}/file/{brief.id}/download", headers=alice)
        assert response.status_code == 200
        assert response.content == b"brief"
        assert "brief.txt" in response.headers["content-disposition"]

        assert client.get(f"{API}/file/{bobs.id}/download", headers=alice).status_code == 403
        assert client.get(
            f"{API}/file/{brief.id}/download", headers=auth_headers(people["carol"])
        ).status_code == 403
        assert client.get(
            f"{API}/file/{bobs.id}/download", headers=auth_headers(people["admin"])
        ).status_code == 200

    def test_missing_on_disk(self, client, db_session, people, auth_headers):
        task = create_task(db_session, creator=people["admin"])
        task_file = create_task_file(db_session, task=task, uploader=people["admin"])
        response = client.get(f"{API}/file/{task_file.id}/download", headers=auth_headers(people["admin"]))
        assert response.status_code == 404
