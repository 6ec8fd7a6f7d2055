"""Tests for group management and admin-side user management."""

import pytest

from backoffice.db.models import User, UserGroup
from tests.factories import create_admin, create_director, create_document, create_group, create_user

pytestmark = pytest.mark.integration

API = "/api/v1"


@pytest.fixture
def admin_headers(db_session, auth_headers):
    return auth_headers(create_admin(db_session))


class TestGroups:

    def test_create_tree_and_descendants(self, client, admin_headers):
        root = client.post(f"{API}/groups", headers=admin_headers, json={"name": "HQ"})
        assert root.status_code == 201
        root_id = root.json()["data"]["id"]

        child = client.post(f"{API}/groups", headers=admin_headers, json={"name": "Sales", "parentId": root_id})
        child_id = child.json()["data"]["id"]
        client.post(f"{API}/groups", headers=admin_headers, json={"name": "North", "parentId": child_id})

        subgroups = client.get(f"{API}/groups/subgroups/{root_id}", headers=admin_headers).json()["data"]
        assert [g["name"] for g in subgroups] == ["Sales"]

        roots = client.get(f"{API}/groups/subgroups/0", headers=admin_headers).json()["data"]
        assert [g["name"] for g in roots] == ["HQ"]

        below = client.get(f"{API}/groups/{root_id}/descendants", headers=admin_headers).json()["data"]
        assert {g["name"] for g in below} == {"HQ", "Sales", "North"}

    def test_duplicate_name(self, client, db_session, admin_headers):
        create_group(db_session, name="Finance")
        response = client.post(f"{API}/groups", headers=admin_headers, json={"name": "Finance"})
        assert response.status_code == 409

    def test_unknown_parent(self, client, admin_headers):
        response = client.post(f"{API}/groups", headers=admin_headers, json={"name": "Orphan", "parentId": 9999})
        assert response.status_code == 404

    def test_move_under_descendant_rejected(self, client, db_session, admin_headers):
        a = create_group(db_session, name="A")
        b = create_group(db_session, name="B", parent=a)
        c = create_group(db_session, name="C", parent=b)

        response = client.put(f"{API}/groups/{a.id}", headers=admin_headers, json={"parentId": c.id})
        assert response.status_code == 400
        assert client.put(f"{API}/groups/{a.id}", headers=admin_headers, json={"parentId": a.id}).status_code == 400

    def test_rename_keeps_parent_and_null_makes_root(self, client, db_session, admin_headers):
        a = create_group(db_session, name="A")
        b = create_group(db_session, name="B", parent=a)

        renamed = client.put(f"{API}/groups/{b.id}", headers=admin_headers, json={"name": "B2"}).json()["data"]
        assert renamed["parentId"] == a.id

        moved = client.put(f"{API}/groups/{b.id}", headers=admin_headers, json={"parentId": None}).json()["data"]
        assert moved["parentId"] is None

    def test_delete_rules(self, client, db_session, admin_headers):
        parent = create_group(db_session, name="Parent")
        child = create_group(db_session, name="Child", parent=parent)
        with_docs = create_group(db_session, name="Docs")
        create_document(db_session, uploader=create_user(db_session, groups=[with_docs]), group=with_docs)

        assert client.delete(f"{API}/groups/{parent.id}", headers=admin_headers).status_code == 409
        assert client.delete(f"{API}/groups/{with_docs.id}", headers=admin_headers).status_code == 409
        assert client.delete(f"{API}/groups/{child.id}", headers=admin_headers).status_code == 200
        assert client.get(f"{API}/groups/{child.id}", headers=admin_headers).status_code == 404

    def test_director_reads_but_cannot_write(self, client, db_session, auth_headers):
        headers = auth_headers(create_director(db_session))
        assert client.get(f"{API}/groups", headers=headers).status_code == 200
        assert client.post(f"{API}/groups", headers=headers, json={"name": "X"}).status_code == 403


class TestAdminUsers:

    def test_create_user_in_one_group(self, client, db_session, admin_headers):
        group = create_group(db_session)
        response = client.post(
            f"{API}/admins/users",
            headers=admin_headers,
            json={"name": "Dana", "telegramId": "dana", "password": "secret", "groupId": group.id},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["role"] == "user"
        assert data["groupIds"] == [group.id]

        login = client.post(f"{API}/users/login", json={"telegramId": "dana", "password": "secret"})
        assert login.status_code == 200

    def test_user_needs_exactly_one_group(self, client, db_session, admin_headers):
        g1, g2 = create_group(db_session), create_group(db_session)
        no_group = client.post(
            f"{API}/admins/users", headers=admin_headers,
            json={"name": "Eve", "telegramId": "eve", "password": "secret"},
        )
        two_groups = client.post(
            f"{API}/admins/users", headers=admin_headers,
            json={"name": "Eve", "telegramId": "eve", "password": "secret", "groupIds": [g1.id, g2.id]},
        )
        assert no_group.status_code == 400
        assert two_groups.status_code == 400
        assert db_session.query(User).filter_by(telegram_id="eve").count() == 0

    def test_duplicate_handle(self, client, db_session, admin_headers):
        group = create_group(db_session)
        create_user(db_session, telegram_id="taken", groups=[group])
        response = client.post(
            f"{API}/admins/users", headers=admin_headers,
            json={"name": "X", "telegramId": "taken", "password": "secret", "groupId": group.id},
        )
        assert response.status_code == 409

    def test_director_group_list_replaces_memberships(self, client, db_session, admin_headers):
        g1, g2, g3 = create_group(db_session), create_group(db_session), create_group(db_session)
        director = create_director(db_session, groups=[g1])

        response = client.put(
            f"{API}/admins/users/{director.id}", headers=admin_headers, json={"groupIds": [g2.id, g3.id]},
        )
        assert response.status_code == 200
        assert sorted(response.json()["data"]["groupIds"]) == sorted([g2.id, g3.id])
        memberships = {m.group_id for m in db_session.query(UserGroup).filter_by(user_id=director.id)}
        assert memberships == {g2.id, g3.id}

    def test_deactivate_blocks_existing_token(self, client, db_session, auth_headers, admin_headers):
        group = create_group(db_session)
        user = create_user(db_session, groups=[group])
        user_headers = auth_headers(user)
        assert client.get(f"{API}/users/me", headers=user_headers).status_code == 200

        client.put(f"{API}/admins/users/{user.id}", headers=admin_headers, json={"status": False})
        assert client.get(f"{API}/users/me", headers=user_headers).status_code == 401

    def test_filter_users_by_group_and_status(self, client, db_session, admin_headers):
        inner = create_group(db_session)
        create_user(db_session, name="Elsewhere", groups=[create_group(db_session)])
        active = create_user(db_session, name="Active One", groups=[inner])
        create_user(db_session, name="Sleeping One", groups=[inner], status=False)

        data = client.get(
            f"{API}/admins/users?groupId={inner.id}&status=true", headers=admin_headers,
        ).json()["data"]
        assert [u["id"] for u in data["users"]] == [active.id]

    def test_delete(self, client, db_session, admin_headers):
        group = create_group(db_session)
        user = create_user(db_session, groups=[group])
        other_admin = create_admin(db_session)

        assert client.delete(f"{API}/admins/users/{user.id}", headers=admin_headers).status_code == 200
        assert db_session.get(User, user.id) is None
        assert client.delete(f"{API}/admins/users/{other_admin.id}", headers=admin_headers).status_code == 400
        assert client.delete(f"{API}/admins/users/9999", headers=admin_headers).status_code == 404

    def test_search(self, client, db_session, admin_headers):
        group = create_group(db_session)
        match = create_user(db_session, name="Marta Quill", groups=[group])
        create_user(db_session, name="Someone Else", groups=[group])
        create_document(db_session, uploader=match, group=group, title="Quill inventory")

        users = client.get(f"{API}/admins/search/users?q=quill", headers=admin_headers).json()["data"]
        assert [u["id"] for u in users] == [match.id]
        documents = client.get(f"{API}/admins/search/documents?q=inventory", headers=admin_headers).json()["data"]
        assert [d["title"] for d in documents] == ["Quill inventory"]
        assert client.get(f"{API}/admins/search/users?q=", headers=admin_headers).status_code == 400
