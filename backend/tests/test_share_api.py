"""Tests for /api/share and /api/shared endpoints."""

from datetime import datetime, timedelta, timezone

from arcive.models import ShareLink


class TestPublicLinks:

    def test_create_and_resolve_without_session(self, client, alice_headers, upload):
        file = upload(alice_headers, name="a.txt", data=b"abc")
        resp = client.post("/api/share", json={"fileId": file["id"]}, headers=alice_headers)
        assert resp.status_code == 201
        link = resp.json()
        assert len(link["token"]) == 21
        assert link["hasPassword"] is False
        assert link["url"].endswith(f"/share/{link['token']}")

        public = client.get(f"/api/share/{link['token']}")
        assert public.status_code == 200
        data = public.json()
        assert data["type"] == "file"
        assert data["file"]["name"] == "a.txt"
        assert client.get(data["file"]["url"]).content == b"abc"

    def test_password_protected(self, client, alice_headers, upload):
        file = upload(alice_headers)
        token = client.post("/api/share", json={"fileId": file["id"], "password": "s3cretpw"},
                            headers=alice_headers).json()["token"]

        resp = client.get(f"/api/share/{token}")
        assert resp.status_code == 401
        assert resp.json()["details"]["requiresPassword"] is True

        assert client.get(f"/api/share/{token}", params={"password": "s3cretpw"}).status_code == 200

    def test_expired_link_is_410(self, client, db, alice_headers, upload):
        file = upload(alice_headers)
        token = client.post("/api/share", json={"fileId": file["id"], "expiresIn": "1h"},
                            headers=alice_headers).json()["token"]
        db.query(ShareLink).update({ShareLink.expires_at: datetime.now(timezone.utc) - timedelta(minutes=1)})
        db.commit()

        assert client.get(f"/api/share/{token}").status_code == 410

    def test_unknown_token_is_404(self, client):
        assert client.get("/api/share/doesnotexist").status_code == 404

    def test_invalid_expiry_is_400(self, client, alice_headers, upload):
        file = upload(alice_headers)
        resp = client.post("/api/share", json={"fileId": file["id"], "expiresIn": "1y"}, headers=alice_headers)
        assert resp.status_code == 400

    def test_needs_exactly_one_target(self, client, alice_headers):
        resp = client.post("/api/share", json={}, headers=alice_headers)
        assert resp.status_code == 400

    def test_list_and_delete(self, client, alice_headers, upload):
        file = upload(alice_headers)
        link = client.post("/api/share", json={"fileId": file["id"]}, headers=alice_headers).json()

        links = client.get("/api/share", params={"fileId": file["id"]}, headers=alice_headers).json()["links"]
        assert [item["id"] for item in links] == [link["id"]]

        resp = client.request("DELETE", "/api/share", json={"linkId": link["id"]}, headers=alice_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/share/{link['token']}").status_code == 404

    def test_folder_link(self, client, alice_headers, upload):
        folder = client.post("/api/folders", json={"name": "Pics"}, headers=alice_headers).json()
        upload(alice_headers, name="cat.png", mime="image/png", folder_id=folder["id"])
        token = client.post("/api/share", json={"folderId": folder["id"], "allowDownload": False},
                            headers=alice_headers).json()["token"]

        data = client.get(f"/api/share/{token}").json()
        assert data["type"] == "folder"
        assert data["folder"]["name"] == "Pics"
        assert [f["name"] for f in data["files"]] == ["cat.png"]
        assert data["files"][0]["url"] is None


class TestInternalSharing:

    def test_share_and_shared_with_me(self, client, alice_headers, bob, bob_headers, upload):
        file = upload(alice_headers, name="plan.txt")
        resp = client.post("/api/share/internal",
                           json={"fileId": file["id"], "email": "bob@example.com", "permission": "edit"},
                           headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json()["shared"] == 1

        shared = client.get("/api/shared", headers=bob_headers).json()
        assert [f["name"] for f in shared["files"]] == ["plan.txt"]
        assert shared["files"][0]["permission"] == "edit"
        assert shared["files"][0]["sharedBy"]["email"] == "alice@example.com"

        access = client.get("/api/share/access", params={"fileId": file["id"]}, headers=alice_headers).json()
        assert [u["email"] for u in access["users"]] == ["bob@example.com"]

        count = client.get("/api/notifications/count", headers=bob_headers).json()
        assert count["count"] == 1

    def test_share_multiple_files(self, client, alice_headers, bob, upload):
        ids = [upload(alice_headers, name=f"{i}.txt")["id"] for i in range(3)]
        resp = client.post("/api/share/internal", json={"fileIds": ids, "email": "bob@example.com"},
                           headers=alice_headers)
        assert resp.json()["shared"] == 3

    def test_self_share_is_400(self, client, alice_headers, upload):
        file = upload(alice_headers)
        resp = client.post("/api/share/internal", json={"fileId": file["id"], "email": "alice@example.com"},
                           headers=alice_headers)
        assert resp.status_code == 400

    def test_unknown_email_is_404(self, client, alice_headers, upload):
        file = upload(alice_headers)
        resp = client.post("/api/share/internal", json={"fileId": file["id"], "email": "ghost@example.com"},
                           headers=alice_headers)
        assert resp.status_code == 404

    def test_revoke(self, client, alice_headers, bob, bob_headers, upload):
        file = upload(alice_headers)
        client.post("/api/share/internal", json={"fileId": file["id"], "email": "bob@example.com"},
                    headers=alice_headers)

        resp = client.request("DELETE", "/api/share/internal", json={"fileId": file["id"], "userId": bob.id},
                              headers=alice_headers)
        assert resp.status_code == 200
        assert client.get("/api/shared", headers=bob_headers).json()["files"] == []

    def test_drill_into_shared_folder(self, client, alice_headers, bob, bob_headers, upload):
        folder = client.post("/api/folders", json={"name": "Team"}, headers=alice_headers).json()
        client.post("/api/share/internal", json={"folderId": folder["id"], "email": "bob@example.com"},
                    headers=alice_headers)
        upload(alice_headers, name="later.txt", folder_id=folder["id"])

        root = client.get("/api/shared", headers=bob_headers).json()
        assert [f["name"] for f in root["folders"]] == ["Team"]

        inside = client.get("/api/shared", params={"folderId": folder["id"]}, headers=bob_headers).json()
        assert [f["name"] for f in inside["files"]] == ["later.txt"]

    def test_drill_into_unshared_folder_is_403(self, client, alice_headers, bob_headers):
        folder = client.post("/api/folders", json={"name": "Private"}, headers=alice_headers).json()
        resp = client.get("/api/shared", params={"folderId": folder["id"]}, headers=bob_headers)
        assert resp.status_code == 403
