"""Tests for SharingService: public links and internal grants."""

from datetime import datetime, timedelta, timezone

import pytest

from arcive.exceptions import (
    FileRecordNotFoundError,
    ForbiddenError,
    PasswordRequiredError,
    ShareLinkExpiredError,
    ShareLinkNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from arcive.models import AccessGrant, Notification, ShareLink
from arcive.services.file_service import FileService
from arcive.services.folder_service import FolderService
from arcive.services.sharing_service import (
    SharingService,
    ShareTarget,
    TargetKind,
    generate_share_token,
    parse_expiry,
)


@pytest.fixture()
def files(db, store):
    return FileService(db, store)


@pytest.fixture()
def service(db, store):
    return SharingService(db, store)


class TestTokensAndExpiry:

    def test_token_is_alphanumeric(self):
        token = generate_share_token()
        assert len(token) == 21
        assert token.isalnum()

    def test_tokens_are_unique(self):
        assert len({generate_share_token() for _ in range(200)}) == 200

    def test_expiry_options(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert parse_expiry("1h", now) == now + timedelta(hours=1)
        assert parse_expiry("30d", now) == now + timedelta(days=30)
        assert parse_expiry(None, now) is None

    def test_unknown_expiry_rejected(self):
        with pytest.raises(ValidationError):
            parse_expiry("2w")


class TestPublicLinks:

    def test_resolve_file_link(self, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        link = service.create_public_link(ShareTarget.file(file.id), alice.id)

        resolved = service.resolve_public_link(link.token)
        assert resolved.file.id == file.id
        assert "signature=" in resolved.url

    def test_one_hour_expiry(self, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        created = datetime.now(timezone.utc)
        link = service.create_public_link(ShareTarget.file(file.id), alice.id, expires_in="1h", now=created)

        assert service.resolve_public_link(link.token, now=created + timedelta(minutes=59)).file.id == file.id
        with pytest.raises(ShareLinkExpiredError):
            service.resolve_public_link(link.token, now=created + timedelta(minutes=61))

    def test_password_is_hashed_and_required(self, db, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        link = service.create_public_link(ShareTarget.file(file.id), alice.id, password="hunter22")

        stored = db.query(ShareLink).one()
        assert stored.password_hash != "hunter22"
        assert stored.password_hash.startswith("$2")

        with pytest.raises(PasswordRequiredError):
            service.resolve_public_link(link.token)
        with pytest.raises(PasswordRequiredError):
            service.resolve_public_link(link.token, password="wrong")
        assert service.resolve_public_link(link.token, password="hunter22").file.id == file.id

    def test_unknown_token(self, service):
        with pytest.raises(ShareLinkNotFoundError):
            service.resolve_public_link("nope")

    def test_trashed_target_is_404(self, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        link = service.create_public_link(ShareTarget.file(file.id), alice.id)
        files.soft_delete(file.id, alice.id)

        with pytest.raises(FileRecordNotFoundError):
            service.resolve_public_link(link.token)

    def test_folder_link_lists_active_children(self, db, service, files, alice):
        folders = FolderService(db)
        top = folders.create_folder("Top", None, alice.id)
        folders.create_folder("Sub", top.id, alice.id)
        keep = files.upload(alice.id, "keep.txt", b"1", folder_id=top.id)
        gone = files.upload(alice.id, "gone.txt", b"1", folder_id=top.id)
        files.soft_delete(gone.id, alice.id)

        link = service.create_public_link(ShareTarget.folder(top.id), alice.id)
        resolved = service.resolve_public_link(link.token)
        assert [f.id for f in resolved.files] == [keep.id]
        assert [f.name for f in resolved.subfolders] == ["Sub"]

    def test_no_download_means_no_url(self, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        link = service.create_public_link(ShareTarget.file(file.id), alice.id, allow_download=False)
        assert service.resolve_public_link(link.token).url is None

    def test_only_owner_can_create_or_delete(self, service, files, alice, bob):
        file = files.upload(alice.id, "a.txt", b"abc")
        with pytest.raises(FileRecordNotFoundError):
            service.create_public_link(ShareTarget.file(file.id), bob.id)

        link = service.create_public_link(ShareTarget.file(file.id), alice.id)
        with pytest.raises(ShareLinkNotFoundError):
            service.delete_public_link(link.id, bob.id)
        service.delete_public_link(link.id, alice.id)
        assert service.list_public_links(ShareTarget.file(file.id), alice.id) == []


class TestInternalGrants:

    def test_grant_notifies_grantee(self, db, service, files, alice, bob):
        file = files.upload(alice.id, "a.txt", b"abc")
        grants = service.grant_internal_access(alice.id, "BOB@example.com", [ShareTarget.file(file.id)])

        assert len(grants) == 1
        assert grants[0].permission == "view"
        notification = db.query(Notification).filter(Notification.user_id == bob.id).one()
        assert notification.type == "share_file"

    def test_self_share_creates_nothing(self, db, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        with pytest.raises(ValidationError):
            service.grant_internal_access(alice.id, "alice@example.com", [ShareTarget.file(file.id)])
        assert db.query(AccessGrant).count() == 0

    def test_unknown_email(self, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        with pytest.raises(UserNotFoundError):
            service.grant_internal_access(alice.id, "nobody@example.com", [ShareTarget.file(file.id)])

    def test_missing_email_and_bad_permission(self, service, files, alice):
        file = files.upload(alice.id, "a.txt", b"abc")
        with pytest.raises(ValidationError):
            service.grant_internal_access(alice.id, "", [ShareTarget.file(file.id)])
        with pytest.raises(ValidationError):
            service.grant_internal_access(alice.id, "bob@example.com", [ShareTarget.file(file.id)], "owner")

    def test_regrant_updates_permission(self, db, service, files, alice, bob):
        file = files.upload(alice.id, "a.txt", b"abc")
        target = ShareTarget.file(file.id)
        service.grant_internal_access(alice.id, "bob@example.com", [target], "view")
        service.grant_internal_access(alice.id, "bob@example.com", [target], "edit")

        grant = db.query(AccessGrant).one()
        assert grant.permission == "edit"

    def test_folder_share_grants_current_files_only(self, db, service, files, alice, bob):
        folder = FolderService(db).create_folder("Team", None, alice.id)
        before = files.upload(alice.id, "before.txt", b"1", folder_id=folder.id)
        service.grant_internal_access(alice.id, "bob@example.com", [ShareTarget.folder(folder.id)])
        after = files.upload(alice.id, "after.txt", b"1", folder_id=folder.id)

        granted = {(g.target_type, g.target_id) for g in db.query(AccessGrant).all()}
        assert ("folder", folder.id) in granted
        assert ("file", before.id) in granted
        assert ("file", after.id) not in granted

        # Later files are still reachable through the folder.
        items = service.list_shared_with(bob.id, folder.id)
        assert {i.item.id for i in items} == {before.id, after.id}

    def test_revoke(self, db, service, files, alice, bob):
        file = files.upload(alice.id, "a.txt", b"abc")
        target = ShareTarget.file(file.id)
        service.grant_internal_access(alice.id, "bob@example.com", [target])

        service.revoke_internal_access(target, bob.id, alice.id)
        assert db.query(AccessGrant).count() == 0

    def test_list_access(self, service, files, alice, bob):
        file = files.upload(alice.id, "a.txt", b"abc")
        target = ShareTarget.file(file.id)
        service.grant_internal_access(alice.id, "bob@example.com", [target], "edit")

        rows = service.list_access(target, alice.id)
        assert [(g.permission, u.email) for g, u in rows] == [("edit", "bob@example.com")]


class TestSharedWithMe:

    def test_root_listing_hides_files_of_shared_folders(self, db, service, files, alice, bob):
        folder = FolderService(db).create_folder("Team", None, alice.id)
        files.upload(alice.id, "inside.txt", b"1", folder_id=folder.id)
        loose = files.upload(alice.id, "loose.txt", b"1")

        service.grant_internal_access(alice.id, "bob@example.com", [ShareTarget.folder(folder.id)])
        service.grant_internal_access(alice.id, "bob@example.com", [ShareTarget.file(loose.id)])

        items = service.list_shared_with(bob.id)
        kinds = {(i.kind, i.item.id) for i in items}
        assert kinds == {(TargetKind.FOLDER, folder.id), (TargetKind.FILE, loose.id)}
        assert all(i.shared_by.id == alice.id for i in items)

    def test_drill_down_without_access_is_forbidden(self, db, service, alice, bob):
        folder = FolderService(db).create_folder("Private", None, alice.id)
        with pytest.raises(ForbiddenError):
            service.list_shared_with(bob.id, folder.id)
