"""Integration tests for the profile endpoints."""

import pytest
from sqlalchemy.exc import OperationalError

from accounts_api.services import users
from accounts_api.services.storage import ImageStorage, StorageError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def picture(content: bytes = PNG, filename: str = "me.png", content_type: str = "image/png"):
    return {"profilePicture": (filename, content, content_type)}


@pytest.mark.asyncio
async def test_get_profile(auth_client):
    response = await auth_client.get("/api/user")

    assert response.status_code == 200
    assert response.json() == {
        "username": "alice",
        "name": "",
        "timezone": "Europe/London",
        "profilePicture": None,
    }


@pytest.mark.asyncio
async def test_update_name_keeps_timezone(auth_client):
    response = await auth_client.post("/api/user/update", json={"name": "Alice A"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["name"] == "Alice A"
    assert body["user"]["timezone"] == "Europe/London"


@pytest.mark.asyncio
async def test_update_timezone_keeps_name(auth_client):
    await auth_client.post("/api/user/update", json={"name": "Alice A"})

    await auth_client.post("/api/user/update", json={"timezone": "America/New_York"})

    body = (await auth_client.get("/api/user")).json()
    assert body["name"] == "Alice A"
    assert body["timezone"] == "America/New_York"


@pytest.mark.asyncio
async def test_update_null_means_unchanged_and_empty_clears(auth_client):
    await auth_client.post("/api/user/update", json={"name": "Alice A"})

    response = await auth_client.post("/api/user/update", json={"name": None, "timezone": ""})

    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Alice A"
    assert response.json()["user"]["timezone"] == ""


@pytest.mark.asyncio
async def test_update_with_no_fields_is_a_no_op(auth_client):
    response = await auth_client.post("/api/user/update", json={})

    assert response.status_code == 200
    assert response.json()["user"]["timezone"] == "Europe/London"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"name": "n" * 121}, {"timezone": "t" * 65}, {"name": 5}])
async def test_update_validation(auth_client, payload):
    response = await auth_client.post("/api/user/update", json=payload)

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_update_storage_failure_is_generic_500(auth_client, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("UPDATE users SET name=?", {}, Exception("disk I/O error"))

    monkeypatch.setattr(users, "update_profile", broken)

    response = await auth_client.post("/api/user/update", json={"name": "Alice A"})

    assert response.status_code == 500
    assert response.json() == {"error": "Update failed"}
    assert "UPDATE" not in response.text


@pytest.mark.asyncio
async def test_upload_picture(auth_client, upload_dir):
    response = await auth_client.post("/api/user/upload-picture", files=picture())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    reference = body["profilePicture"]
    assert reference.startswith("/images/")
    assert reference.endswith(".png")
    assert (upload_dir / reference.rsplit("/", 1)[1]).read_bytes() == PNG

    profile = (await auth_client.get("/api/user")).json()
    assert profile["profilePicture"] == reference


@pytest.mark.asyncio
async def test_uploaded_picture_is_served(auth_client):
    reference = (await auth_client.post("/api/user/upload-picture", files=picture())).json()["profilePicture"]

    response = await auth_client.get(reference)

    assert response.status_code == 200
    assert response.content == PNG


@pytest.mark.asyncio
async def test_second_upload_replaces_first(auth_client, upload_dir):
    first = (await auth_client.post("/api/user/upload-picture", files=picture())).json()["profilePicture"]
    second = (
        await auth_client.post("/api/user/upload-picture", files=picture(b"GIF89a...", "me.gif", "image/gif"))
    ).json()["profilePicture"]

    assert first != second
    assert (await auth_client.get("/api/user")).json()["profilePicture"] == second
    assert (await auth_client.get(first)).status_code == 404
    assert sorted(p.name for p in upload_dir.iterdir()) == [second.rsplit("/", 1)[1]]


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/gif", "image/webp"])
async def test_upload_accepts_image_types(auth_client, content_type):
    response = await auth_client.post(
        "/api/user/upload-picture", files=picture(b"image-bytes", "pic", content_type)
    )
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filename, content_type",
    [("notes.txt", "text/plain"), ("doc.pdf", "application/pdf"), ("fake.png", "application/octet-stream")],
)
async def test_upload_rejects_non_images(auth_client, upload_dir, filename, content_type):
    response = await auth_client.post(
        "/api/user/upload-picture", files=picture(b"hello", filename, content_type)
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid file type. Only images are allowed"}
    assert list(upload_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_rejects_oversized(auth_client, upload_dir):
    big = b"\x00" * (5 * 1024 * 1024 + 1)

    response = await auth_client.post("/api/user/upload-picture", files=picture(big))

    assert response.status_code == 400
    assert response.json() == {"error": "File size must be less than 5MB"}
    assert list(upload_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_upload_rejects_empty_file(auth_client):
    response = await auth_client.post("/api/user/upload-picture", files=picture(b""))

    assert response.status_code == 400
    assert response.json() == {"error": "Uploaded file is empty"}


@pytest.mark.asyncio
async def test_upload_without_file(auth_client):
    response = await auth_client.post("/api/user/upload-picture", data={"note": "forgot the picture"})

    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}


@pytest.mark.asyncio
async def test_upload_under_wrong_field_name(auth_client):
    response = await auth_client.post(
        "/api/user/upload-picture", files={"avatar": ("me.png", PNG, "image/png")}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}


@pytest.mark.asyncio
async def test_rejected_upload_keeps_previous_picture(auth_client):
    first = (await auth_client.post("/api/user/upload-picture", files=picture())).json()["profilePicture"]

    await auth_client.post("/api/user/upload-picture", files=picture(b"text", "a.txt", "text/plain"))

    assert (await auth_client.get("/api/user")).json()["profilePicture"] == first
    assert (await auth_client.get(first)).status_code == 200


@pytest.mark.asyncio
async def test_upload_storage_failure_is_generic_500(auth_client, monkeypatch):
    def broken_save(self, content, *, filename, content_type):
        raise StorageError("disk full")

    monkeypatch.setattr(ImageStorage, "save", broken_save)

    response = await auth_client.post("/api/user/upload-picture", files=picture())

    assert response.status_code == 500
    assert response.json() == {"error": "Upload failed"}
    assert (await auth_client.get("/api/user")).json()["profilePicture"] is None
