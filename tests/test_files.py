import re

from cloudbox.api.v1.endpoints.files import content_disposition
from conftest import MAX_UPLOAD, auth, upload


def test_share_link_scenario(client, alice):
    response = upload(client, alice, "a.txt", b"0123456789")
    assert response.status_code == 201
    file = response.json()
    assert file["originalName"] == "a.txt"
    assert file["size"] == 10
    assert file["isPublic"] is False
    assert file["shareToken"] is None

    listing = client.get("/api/files", headers=alice).json()
    assert [f["id"] for f in listing] == [file["id"]]

    # private file, no identity
    response = client.get(f"/api/files/{file['id']}/download")
    assert response.status_code == 403

    response = client.post(f"/api/files/{file['id']}/share", headers=alice)
    assert response.status_code == 200
    share = response.json()
    token = share["shareToken"]
    assert len(token) == 32
    assert re.fullmatch(r"[A-Za-z0-9_-]{32}", token)
    assert share["shareUrl"] == f"http://testserver/share/{token}"
    assert share["file"]["isPublic"] is True

    response = client.get(f"/api/share/{token}")
    assert response.status_code == 200
    assert response.json()["id"] == file["id"]
    assert response.json()["originalName"] == "a.txt"

    response = client.get(f"/api/files/{file['id']}/download")
    assert response.status_code == 200
    assert response.content == b"0123456789"
    assert response.headers["content-disposition"].startswith('attachment; filename="a.txt"')


def test_private_file_forbidden_to_other_users(client, alice, bob):
    file = upload(client, alice).json()

    for action in ("download", "view"):
        response = client.get(f"/api/files/{file['id']}/{action}", headers=bob)
        assert response.status_code == 403

    assert client.get(f"/api/files/{file['id']}", headers=bob).status_code == 403
    assert client.delete(f"/api/files/{file['id']}", headers=bob).status_code == 403
    assert client.post(f"/api/files/{file['id']}/share", headers=bob).status_code == 403

    # an identity that never registered is denied as well
    stranger = auth("stranger-uid")
    assert client.get(f"/api/files/{file['id']}/download", headers=stranger).status_code == 403


def test_owner_can_download_and_view(client, alice):
    file = upload(client, alice, "notes.md", b"# hi", mime="text/markdown").json()

    response = client.get(f"/api/files/{file['id']}/view", headers=alice)
    assert response.status_code == 200
    assert response.content == b"# hi"
    assert response.headers["content-type"].startswith("text/markdown")
    assert response.headers["content-disposition"].startswith('inline; filename="notes.md"')


def test_public_view_needs_no_identity(client, alice):
    file = upload(client, alice).json()
    client.post(f"/api/files/{file['id']}/share", headers=alice)

    response = client.get(f"/api/files/{file['id']}/view")
    assert response.status_code == 200
    assert response.content == b"0123456789"


def test_invalid_token_is_rejected(client, alice):
    file = upload(client, alice).json()
    headers = {"Authorization": "Bearer not-a-real-token"}
    assert client.get(f"/api/files/{file['id']}/download", headers=headers).status_code == 401
    assert client.get("/api/files", headers=headers).status_code == 401


def test_missing_identity_on_listing(client):
    assert client.get("/api/files").status_code == 401
    assert client.get("/api/files/recent").status_code == 401


def test_reissue_invalidates_previous_token(client, alice):
    file = upload(client, alice).json()
    first = client.post(f"/api/files/{file['id']}/share", headers=alice).json()["shareToken"]
    second = client.post(f"/api/files/{file['id']}/share", headers=alice).json()["shareToken"]

    assert first != second
    assert client.get(f"/api/share/{first}").status_code == 404
    assert client.get(f"/api/share/{second}").status_code == 200


def test_revoke_through_update(client, alice):
    file = upload(client, alice).json()
    token = client.post(f"/api/files/{file['id']}/share", headers=alice).json()["shareToken"]

    response = client.patch(f"/api/files/{file['id']}", json={"isPublic": False}, headers=alice)
    assert response.status_code == 200
    assert response.json()["isPublic"] is False
    assert response.json()["shareToken"] is None

    assert client.get(f"/api/share/{token}").status_code == 404
    assert client.get(f"/api/files/{file['id']}/download").status_code == 403


def test_update_cannot_make_file_public(client, alice):
    file = upload(client, alice).json()
    response = client.patch(f"/api/files/{file['id']}", json={"isPublic": True}, headers=alice)
    assert response.status_code == 400
    assert client.get(f"/api/files/{file['id']}", headers=alice).json()["isPublic"] is False


def test_unknown_share_token(client):
    assert client.get("/api/share/does-not-exist").status_code == 404


def test_recent_files_order_and_limit(client, alice):
    first = upload(client, alice, "1.txt").json()
    second = upload(client, alice, "2.txt").json()
    third = upload(client, alice, "3.txt").json()

    recent = client.get("/api/files/recent", headers=alice).json()
    assert [f["id"] for f in recent] == [third["id"], second["id"], first["id"]]

    recent = client.get("/api/files/recent?limit=2", headers=alice).json()
    assert [f["id"] for f in recent] == [third["id"], second["id"]]

    # any update moves a file to the front
    client.patch(f"/api/files/{first['id']}", json={"originalName": "one.txt"}, headers=alice)
    recent = client.get("/api/files/recent", headers=alice).json()
    assert [f["id"] for f in recent] == [first["id"], third["id"], second["id"]]
    assert recent[0]["originalName"] == "one.txt"


def test_recent_files_span_folders(client, alice):
    folder = client.post("/api/folders", json={"name": "docs"}, headers=alice).json()
    top = upload(client, alice, "top.txt").json()
    nested = upload(client, alice, "nested.txt", folder_id=folder["id"]).json()

    assert [f["id"] for f in client.get("/api/files", headers=alice).json()] == [top["id"]]
    recent = client.get("/api/files/recent", headers=alice).json()
    assert [f["id"] for f in recent] == [nested["id"], top["id"]]


def test_listing_is_scoped_to_caller(client, alice, bob):
    upload(client, alice, "mine.txt")
    assert client.get("/api/files", headers=bob).json() == []
    assert client.get("/api/files/recent", headers=bob).json() == []


def test_upload_at_size_limit(client, alice, upload_dir):
    response = upload(client, alice, "exact.bin", b"x" * MAX_UPLOAD)
    assert response.status_code == 201
    assert response.json()["size"] == MAX_UPLOAD
    assert (upload_dir / response.json()["name"]).stat().st_size == MAX_UPLOAD


def test_upload_one_byte_over_limit(client, alice, upload_dir):
    response = upload(client, alice, "over.bin", b"x" * (MAX_UPLOAD + 1))
    assert response.status_code == 413
    assert response.json()["message"]

    assert client.get("/api/files", headers=alice).json() == []
    assert list(upload_dir.iterdir()) == []


def test_upload_with_oversized_content_length(client, alice):
    response = upload(client, alice, "huge.bin", b"x" * (200 * 1024))
    assert response.status_code == 413
    assert response.json() == {"message": "File too large"}


def test_upload_requires_file_field(client, alice):
    response = client.post("/api/files/upload", data={"folderId": "1"}, headers=alice)
    assert response.status_code == 400


def test_upload_requires_registered_user(client):
    response = upload(client, auth("ghost-uid"))
    assert response.status_code == 404


def test_upload_into_foreign_folder(client, alice, bob):
    folder = client.post("/api/folders", json={"name": "private"}, headers=alice).json()
    response = upload(client, bob, folder_id=folder["id"])
    assert response.status_code == 403


def test_upload_into_missing_folder(client, alice):
    assert upload(client, alice, folder_id=999).status_code == 404


def test_storage_name_is_generated(client, alice, upload_dir):
    file = upload(client, alice, "my report (1).txt").json()
    assert file["originalName"] == "my report (1).txt"
    assert re.fullmatch(r"\d+-[A-Za-z0-9_-]{21}-my_report__1_\.txt", file["name"])
    assert (upload_dir / file["name"]).is_file()


def test_delete_removes_blob_and_row(client, alice, upload_dir):
    file = upload(client, alice).json()

    response = client.delete(f"/api/files/{file['id']}", headers=alice)
    assert response.status_code == 200
    assert not (upload_dir / file["name"]).exists()
    assert client.get(f"/api/files/{file['id']}", headers=alice).status_code == 404
    assert client.delete(f"/api/files/{file['id']}", headers=alice).status_code == 404


def test_delete_shared_file_invalidates_link(client, alice):
    file = upload(client, alice).json()
    token = client.post(f"/api/files/{file['id']}/share", headers=alice).json()["shareToken"]
    client.delete(f"/api/files/{file['id']}", headers=alice)
    assert client.get(f"/api/share/{token}").status_code == 404


def test_missing_blob(client, alice, upload_dir):
    file = upload(client, alice).json()
    (upload_dir / file["name"]).unlink()

    response = client.get(f"/api/files/{file['id']}/download", headers=alice)
    assert response.status_code == 404
    assert response.json() == {"message": "File not found on disk"}

    # the record can still be cleaned up
    assert client.delete(f"/api/files/{file['id']}", headers=alice).status_code == 200
    assert client.get("/api/files", headers=alice).json() == []


def test_move_file_between_folders(client, alice, bob):
    folder = client.post("/api/folders", json={"name": "docs"}, headers=alice).json()
    file = upload(client, alice).json()

    response = client.patch(f"/api/files/{file['id']}", json={"folderId": folder["id"]}, headers=alice)
    assert response.status_code == 200
    assert response.json()["folderId"] == folder["id"]
    assert client.get("/api/files", headers=alice).json() == []
    assert len(client.get(f"/api/files?folder={folder['id']}", headers=alice).json()) == 1

    response = client.patch(f"/api/files/{file['id']}", json={"folderId": None}, headers=alice)
    assert response.json()["folderId"] is None

    bobs = client.post("/api/folders", json={"name": "bob"}, headers=bob).json()
    response = client.patch(f"/api/files/{file['id']}", json={"folderId": bobs["id"]}, headers=alice)
    assert response.status_code == 403


def test_rename_rejects_control_characters(client, alice):
    file = upload(client, alice).json()
    for name in ("x\r\nSet-Cookie: a=b", "tab\there", "bell\x07", "   "):
        response = client.patch(f"/api/files/{file['id']}", json={"originalName": name}, headers=alice)
        assert response.status_code == 400

    assert client.get(f"/api/files/{file['id']}", headers=alice).json()["originalName"] == "a.txt"


def test_content_disposition_is_header_safe():
    value = content_disposition("attachment", 'x\r\nSet-Cookie: "a"=b\x7f')
    assert not any(ord(c) < 0x20 or ord(c) == 0x7f for c in value)
    assert value.startswith('attachment; filename="x__Set-Cookie: _a_=b_";')
    assert "filename*=UTF-8''x%0D%0ASet-Cookie" in value

    value = content_disposition("inline", "résumé.pdf")
    assert value == "inline; filename=\"r_sum_.pdf\"; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf"


def multipart_chunks(boundary, name, content, chunk_size=8 * 1024):
    yield (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="file"; filename="{name}"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
    ).encode()
    for start in range(0, len(content), chunk_size):
        yield content[start:start + chunk_size]
    yield f"\r\n--{boundary}--\r\n".encode()


def test_chunked_upload_is_counted(client, alice, upload_dir):
    boundary = "cloudbox-test-boundary"
    headers = {**alice, "Content-Type": f"multipart/form-data; boundary={boundary}"}

    # no Content-Length: the body is only measured as it arrives
    response = client.post(
        "/api/files/upload",
        content=multipart_chunks(boundary, "big.bin", b"x" * (100 * 1024)),
        headers=headers,
    )
    assert response.status_code == 413
    assert response.json() == {"message": "File too large"}
    assert client.get("/api/files", headers=alice).json() == []
    assert list(upload_dir.iterdir()) == []

    response = client.post(
        "/api/files/upload",
        content=multipart_chunks(boundary, "small.bin", b"y" * 100),
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["size"] == 100
