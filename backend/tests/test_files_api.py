"""Tests for /api/files and /api/trash endpoints."""


class TestUpload:

    def test_upload_returns_file_with_signed_url(self, client, alice_headers, upload):
        file = upload(alice_headers, name="report.pdf", data=b"%PDF-1.4")
        assert file["name"] == "report.pdf"
        assert file["mimeType"] == "application/pdf"
        assert file["size"] == 8
        assert "signature=" in file["url"]

        blob = client.get(file["url"])
        assert blob.status_code == 200
        assert blob.content == b"%PDF-1.4"

    def test_upload_disabled_is_403(self, client, make_user, headers_for):
        carol = make_user("carol@example.com", upload_enabled=False)
        resp = client.post(
            "/api/files/upload",
            files={"file": ("a.txt", b"abc", "text/plain")},
            headers=headers_for(carol),
        )
        assert resp.status_code == 403
        body = resp.json()
        assert body["code"] == "UPLOAD_REJECTED"
        assert body["details"]["reason"] == "upload_disabled"

    def test_upload_too_large(self, client, make_user, headers_for):
        carol = make_user("carol@example.com", max_file_size=4)
        resp = client.post(
            "/api/files/upload",
            files={"file": ("a.txt", b"12345", "text/plain")},
            headers=headers_for(carol),
        )
        assert resp.status_code == 403
        assert resp.json()["details"]["reason"] == "file_too_large"

    def test_upload_into_unknown_folder_is_404(self, client, alice_headers):
        resp = client.post(
            "/api/files/upload",
            files={"file": ("a.txt", b"abc", "text/plain")},
            data={"folderId": "missing"},
            headers=alice_headers,
        )
        assert resp.status_code == 404

    def test_upload_requires_file_field(self, client, alice_headers):
        resp = client.post("/api/files/upload", data={"folderId": ""}, headers=alice_headers)
        assert resp.status_code == 400


class TestListAndUpdate:

    def test_list_only_own_active_files(self, client, alice_headers, bob_headers, upload):
        mine = upload(alice_headers, name="mine.txt")
        upload(bob_headers, name="theirs.txt")
        trashed = upload(alice_headers, name="trashed.txt")
        client.request("DELETE", "/api/files", json={"fileId": trashed["id"]}, headers=alice_headers)

        resp = client.get("/api/files", headers=alice_headers)
        assert resp.status_code == 200
        assert [f["id"] for f in resp.json()["files"]] == [mine["id"]]

    def test_list_by_folder(self, client, alice_headers, upload):
        folder = client.post("/api/folders", json={"name": "Docs"}, headers=alice_headers).json()
        inside = upload(alice_headers, name="in.txt", folder_id=folder["id"])
        upload(alice_headers, name="out.txt")

        resp = client.get("/api/files", params={"folderId": folder["id"]}, headers=alice_headers)
        assert [f["id"] for f in resp.json()["files"]] == [inside["id"]]

    def test_rename_and_star(self, client, alice_headers, upload):
        file = upload(alice_headers, name="old.txt")
        resp = client.patch("/api/files", json={"fileId": file["id"], "name": " new.txt ", "isStarred": True},
                            headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json()["name"] == "new.txt"
        assert resp.json()["isStarred"] is True

        starred = client.get("/api/files", params={"starred": "true"}, headers=alice_headers)
        assert [f["id"] for f in starred.json()["files"]] == [file["id"]]

    def test_rename_foreign_file_is_404(self, client, alice_headers, bob_headers, upload):
        file = upload(bob_headers)
        resp = client.patch("/api/files", json={"fileId": file["id"], "name": "x"}, headers=alice_headers)
        assert resp.status_code == 404
        assert resp.json()["code"] == "FILE_NOT_FOUND"

    def test_move_between_folders(self, client, alice_headers, upload):
        folder = client.post("/api/folders", json={"name": "Docs"}, headers=alice_headers).json()
        file = upload(alice_headers)

        resp = client.put("/api/files", json={"fileId": file["id"], "folderId": folder["id"]}, headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json()["folderId"] == folder["id"]

        resp = client.put("/api/files", json={"fileId": file["id"], "folderId": None}, headers=alice_headers)
        assert resp.json()["folderId"] is None


class TestTrash:

    def test_soft_delete_and_restore(self, client, alice_headers, upload):
        file = upload(alice_headers)
        resp = client.request("DELETE", "/api/files", json={"fileId": file["id"]}, headers=alice_headers)
        assert resp.status_code == 200

        trash = client.get("/api/trash", headers=alice_headers).json()["files"]
        assert [f["id"] for f in trash] == [file["id"]]
        assert trash[0]["isDeleted"] is True

        resp = client.post("/api/trash", json={"fileId": file["id"]}, headers=alice_headers)
        assert resp.status_code == 200
        assert client.get("/api/trash", headers=alice_headers).json()["files"] == []
        assert len(client.get("/api/files", headers=alice_headers).json()["files"]) == 1

    def test_restore_active_file_is_404(self, client, alice_headers, upload):
        file = upload(alice_headers)
        resp = client.post("/api/trash", json={"fileId": file["id"]}, headers=alice_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "File not found in trash"

    def test_permanent_delete_frees_quota(self, client, alice_headers, upload):
        file = upload(alice_headers, data=b"x" * 100)
        assert client.get("/api/permission", headers=alice_headers).json()["storageUsed"] == 100

        client.request("DELETE", "/api/files", json={"fileId": file["id"]}, headers=alice_headers)
        assert client.get("/api/permission", headers=alice_headers).json()["storageUsed"] == 100

        resp = client.request("DELETE", "/api/trash", json={"fileId": file["id"]}, headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json()["freedBytes"] == 100
        assert client.get("/api/permission", headers=alice_headers).json()["storageUsed"] == 0

    def test_blob_gone_after_purge(self, client, alice_headers, upload):
        file = upload(alice_headers)
        client.request("DELETE", "/api/files", json={"fileId": file["id"]}, headers=alice_headers)
        client.request("DELETE", "/api/trash", json={"fileId": file["id"]}, headers=alice_headers)

        assert client.get(file["url"]).status_code == 404

    def test_download_uses_display_name(self, client, alice_headers, upload):
        file = upload(alice_headers, name="cv.pdf", data=b"%PDF")
        client.patch("/api/files", json={"fileId": file["id"], "name": "résumé.pdf"}, headers=alice_headers)

        resp = client.get(file["url"])
        assert resp.status_code == 200
        assert resp.content == b"%PDF"
        assert "r%C3%A9sum%C3%A9.pdf" in resp.headers["content-disposition"]
        assert resp.headers["content-type"].startswith("application/pdf")

    def test_empty_trash(self, client, alice_headers, upload):
        for name in ("a.txt", "b.txt"):
            f = upload(alice_headers, name=name, data=b"123")
            client.request("DELETE", "/api/files", json={"fileId": f["id"]}, headers=alice_headers)

        resp = client.request("DELETE", "/api/trash", json={"emptyTrash": True}, headers=alice_headers)
        assert resp.json() == {"success": True, "deleted": 2, "freedBytes": 6}

        activity = client.get("/api/activity", headers=alice_headers).json()["activities"]
        assert activity[0]["action"] == "empty_trash"
        assert activity[0]["metadata"] == {"freedBytes": 6, "count": 2}

    def test_trash_delete_needs_target(self, client, alice_headers):
        resp = client.request("DELETE", "/api/trash", json={}, headers=alice_headers)
        assert resp.status_code == 400
