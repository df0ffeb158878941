"""Tests for FolderService: ownership, cycle guards, delete semantics, access."""

import pytest

from arcive.exceptions import (
    CircularMoveError,
    FolderNotFoundError,
    SelfParentError,
    ValidationError,
)
from arcive.models import AccessGrant, File, Folder
from arcive.services.folder_service import FolderService


@pytest.fixture()
def service(db):
    return FolderService(db)


class TestCreate:

    def test_trims_name(self, service, alice):
        folder = service.create_folder("  Projects  ", None, alice.id)
        assert folder.name == "Projects"
        assert folder.parent_id is None

    def test_empty_name_rejected(self, service, alice):
        with pytest.raises(ValidationError, match="Folder name is required"):
            service.create_folder("   ", None, alice.id)

    def test_foreign_parent_looks_missing(self, service, alice, bob):
        parent = service.create_folder("Bob's", None, bob.id)
        with pytest.raises(FolderNotFoundError, match="Parent folder not found"):
            service.create_folder("Child", parent.id, alice.id)


class TestMove:

    def test_self_parent(self, service, alice):
        a = service.create_folder("A", None, alice.id)
        with pytest.raises(SelfParentError):
            service.move_folder(a.id, a.id, alice.id)

    def test_move_into_descendant_rejected(self, service, alice):
        a = service.create_folder("A", None, alice.id)
        b = service.create_folder("B", a.id, alice.id)
        c = service.create_folder("C", b.id, alice.id)

        with pytest.raises(CircularMoveError):
            service.move_folder(a.id, c.id, alice.id)

    def test_deep_chain_has_no_hop_cap(self, service, alice):
        root = service.create_folder("level-0", None, alice.id)
        parent = root
        for i in range(1, 60):
            parent = service.create_folder(f"level-{i}", parent.id, alice.id)

        with pytest.raises(CircularMoveError):
            service.move_folder(root.id, parent.id, alice.id)

    def test_valid_move_and_back_to_root(self, service, alice):
        a = service.create_folder("A", None, alice.id)
        b = service.create_folder("B", None, alice.id)

        moved = service.move_folder(b.id, a.id, alice.id)
        assert moved.parent_id == a.id

        moved = service.move_folder(b.id, None, alice.id)
        assert moved.parent_id is None

    def test_foreign_target_looks_missing(self, service, alice, bob):
        mine = service.create_folder("Mine", None, alice.id)
        theirs = service.create_folder("Theirs", None, bob.id)
        with pytest.raises(FolderNotFoundError):
            service.move_folder(mine.id, theirs.id, alice.id)

    def test_corrupted_cycle_terminates(self, db, service, alice):
        a = service.create_folder("A", None, alice.id)
        b = service.create_folder("B", a.id, alice.id)
        # Force a cycle A <-> B behind the service's back.
        db.query(Folder).filter(Folder.id == a.id).update({Folder.parent_id: b.id})
        db.commit()

        ids = service.get_ancestor_ids(b.id)
        assert set(ids) == {a.id, b.id}


class TestDelete:

    def test_contents_move_to_root(self, db, service, alice):
        parent = service.create_folder("Parent", None, alice.id)
        child = service.create_folder("Child", parent.id, alice.id)
        db.add(File(name="f.txt", size=1, storage_key="k/f", owner_id=alice.id, folder_id=parent.id))
        db.commit()

        service.delete_folder(parent.id, alice.id)

        db.expire_all()
        assert db.query(Folder).filter(Folder.id == parent.id).first() is None
        assert db.query(Folder).filter(Folder.id == child.id).one().parent_id is None
        assert db.query(File).one().folder_id is None

    def test_not_owner(self, service, alice, bob):
        folder = service.create_folder("Bob's", None, bob.id)
        with pytest.raises(FolderNotFoundError):
            service.delete_folder(folder.id, alice.id)


class TestHasAccess:

    def test_owner(self, service, alice):
        folder = service.create_folder("A", None, alice.id)
        assert service.has_access(folder.id, alice.id, "edit")

    def test_grant_on_ancestor_reaches_descendants(self, db, service, alice, bob):
        top = service.create_folder("Top", None, alice.id)
        nested = service.create_folder("Nested", top.id, alice.id)
        db.add(AccessGrant(
            target_type="folder", target_id=top.id, shared_with_user_id=bob.id,
            permission="view", shared_by=alice.id,
        ))
        db.commit()

        assert service.has_access(nested.id, bob.id, "view")
        assert not service.has_access(nested.id, bob.id, "edit")

    def test_no_grant(self, service, alice, bob):
        folder = service.create_folder("A", None, alice.id)
        assert not service.has_access(folder.id, bob.id, "view")
