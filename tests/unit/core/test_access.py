"""Tests for document visibility and deletion decisions."""

from backoffice.core.access import (
    DeleteDecision,
    can_edit_document,
    can_view_document,
    deletion_decision,
    visible_group_ids,
)
from tests.factories import (
    create_admin,
    create_director,
    create_document,
    create_group,
    create_user,
)


class TestVisibility:
    """Membership in a group reaches that group and everything below it."""

    def test_parent_member_sees_descendants(self, db_session):
        a = create_group(db_session)
        b = create_group(db_session, parent=a)
        c = create_group(db_session, parent=b)
        viewer = create_user(db_session, groups=[a])
        uploader = create_user(db_session, groups=[c])
        doc = create_document(db_session, uploader=uploader, group=c)

        assert visible_group_ids(db_session, viewer) == {a.id, b.id, c.id}
        assert can_view_document(db_session, viewer, doc)

    def test_child_member_does_not_see_parent(self, db_session):
        a = create_group(db_session)
        b = create_group(db_session, parent=a)
        viewer = create_user(db_session, groups=[b])
        uploader = create_user(db_session, groups=[a])
        doc = create_document(db_session, uploader=uploader, group=a)

        assert not can_view_document(db_session, viewer, doc)

    def test_sibling_groups_are_isolated(self, db_session):
        root = create_group(db_session)
        left = create_group(db_session, parent=root)
        right = create_group(db_session, parent=root)
        viewer = create_user(db_session, groups=[left])
        uploader = create_user(db_session, groups=[right])
        doc = create_document(db_session, uploader=uploader, group=right)

        assert not can_view_document(db_session, viewer, doc)

    def test_admin_class_is_unrestricted(self, db_session):
        group = create_group(db_session)
        uploader = create_user(db_session, groups=[group])
        doc = create_document(db_session, uploader=uploader, group=group)

        for identity in (create_admin(db_session), create_director(db_session)):
            assert visible_group_ids(db_session, identity) is None
            assert can_view_document(db_session, identity, doc)

    def test_user_without_groups_sees_nothing(self, db_session):
        user = create_user(db_session)
        assert visible_group_ids(db_session, user) == set()


class TestEditAndDelete:

    def test_owner_and_admin_can_edit(self, db_session):
        group = create_group(db_session)
        owner = create_user(db_session, groups=[group])
        other = create_user(db_session, groups=[group])
        doc = create_document(db_session, uploader=owner, group=group)

        assert can_edit_document(owner, doc)
        assert can_edit_document(create_admin(db_session), doc)
        assert not can_edit_document(other, doc)

    def test_deletion_decisions(self, db_session):
        group = create_group(db_session)
        owner = create_user(db_session, groups=[group])
        other = create_user(db_session, groups=[group])
        doc = create_document(db_session, uploader=owner, group=group)

        assert deletion_decision(create_admin(db_session), doc) == DeleteDecision.DIRECT
        assert deletion_decision(create_director(db_session), doc) == DeleteDecision.DIRECT
        assert deletion_decision(owner, doc) == DeleteDecision.REQUEST
        assert deletion_decision(other, doc) == DeleteDecision.DENIED
