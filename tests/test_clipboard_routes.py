"""HTTP tests for the clipboard routes."""
import os
from datetime import timedelta

import pytest

import clipboards
import ids
from routers import clipboard as clipboard_routes


async def _create(client, **body):
    response = await client.post("/api/clipboard", json=body)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_and_fetch(client, monkeypatch):
    monkeypatch.setattr(ids, "random_id", lambda: "0042")

    created = await _create(client, content="hello", isPublic=True)
    assert created["id"] == "0042"
    assert created["files"] == []
    assert created["isPublic"] is True
    assert {"createdAt", "lastAccessed", "expiresAt"} <= set(created)

    response = await client.get("/api/clipboard/0042")
    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "hello"
    assert body["isPublic"] is True
    assert body["files"] == []

    response = await client.get("/api/clipboard", params={"id": "0042"})
    assert response.json()["content"] == "hello"

    assert (await client.delete("/api/clipboard/0042")).status_code == 200
    assert (await client.get("/api/clipboard/0042")).status_code == 404


@pytest.mark.asyncio
async def test_create_defaults(client):
    created = await _create(client)
    assert created["content"] == ""
    assert created["isPublic"] is False
    assert created["sentToReceiveCode"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["true", 1, "yes"])
async def test_is_public_must_be_a_boolean(client, value):
    response = await client.post("/api/clipboard", json={"content": "x", "isPublic": value})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_fetch_requires_id(client):
    response = await client.get("/api/clipboard")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update(client):
    created = await _create(client, content="X")

    response = await client.put(f"/api/clipboard/{created['id']}", json={"content": "Y"})
    assert response.status_code == 200
    assert (await client.get(f"/api/clipboard/{created['id']}")).json()["content"] == "Y"

    response = await client.put("/api/clipboard/9999", json={"content": "Y"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_twice(client):
    created = await _create(client, content="X")

    assert (await client.delete(f"/api/clipboard/{created['id']}")).status_code == 200
    assert (await client.delete(f"/api/clipboard/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_list_public_only(client, shift_clock):
    for minutes, public in [(0, True), (1, False), (2, True)]:
        shift_clock(timedelta(minutes=minutes))
        await _create(client, content=str(minutes), isPublic=public)

    response = await client.get("/api/clipboard", params={"all": "true", "public": "true"})
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [c["content"] for c in body["clipboards"]] == ["2", "0"]

    response = await client.get("/api/clipboard", params={"all": "true", "limit": 2})
    assert [c["content"] for c in response.json()["clipboards"]] == ["2", "1"]


@pytest.mark.asyncio
async def test_expired_clipboard_is_not_found(client, shift_clock):
    shift_clock(timedelta(hours=-25))
    created = await _create(client, content="old", isPublic=True)
    shift_clock(timedelta(0))

    assert (await client.get(f"/api/clipboard/{created['id']}")).status_code == 404
    listed = (await client.get("/api/clipboard", params={"all": "true"})).json()
    assert listed["count"] == 0


class TestFiles:
    @pytest.mark.asyncio
    async def test_upload_and_download(self, client):
        created = await _create(client)
        data = os.urandom(1024)

        response = await client.post(
            f"/api/clipboard/{created['id']}/upload",
            files={"file": ("notes.txt", data, "text/plain")},
        )
        assert response.status_code == 200, response.text
        uploaded = response.json()
        assert uploaded["originalName"] == "notes.txt"
        assert uploaded["size"] == 1024
        assert uploaded["mimeType"] == "text/plain"
        assert "blobHandle" not in uploaded

        fetched = (await client.get(f"/api/clipboard/{created['id']}")).json()
        assert [f["filename"] for f in fetched["files"]] == [uploaded["filename"]]
        assert "blobHandle" not in fetched["files"][0]

        response = await client.get(f"/api/clipboard/{created['id']}/file/{uploaded['filename']}")
        assert response.status_code == 200
        assert response.content == data
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["content-disposition"].startswith('attachment; filename="notes.txt"')

    @pytest.mark.asyncio
    async def test_non_ascii_filename(self, client):
        created = await _create(client)
        response = await client.post(
            f"/api/clipboard/{created['id']}/upload",
            files={"file": ("résumé.pdf", b"%PDF", "application/pdf")},
        )
        filename = response.json()["filename"]

        response = await client.get(f"/api/clipboard/{created['id']}/file/{filename}")
        assert "filename*=UTF-8''r%C3%A9sum%C3%A9.pdf" in response.headers["content-disposition"]

    @pytest.mark.asyncio
    async def test_oversized_upload_is_rejected(self, client, monkeypatch):
        monkeypatch.setattr(clipboards, "MAX_FILE_BYTES", 1024)
        monkeypatch.setattr(clipboard_routes, "MAX_FILE_BYTES", 1024)
        created = await _create(client)

        response = await client.post(
            f"/api/clipboard/{created['id']}/upload",
            files={"file": ("big.bin", os.urandom(2048), "application/octet-stream")},
        )
        assert response.status_code == 413

        fetched = (await client.get(f"/api/clipboard/{created['id']}")).json()
        assert fetched["files"] == []

    @pytest.mark.asyncio
    async def test_upload_to_unknown_clipboard(self, client):
        response = await client.post(
            "/api/clipboard/9999/upload",
            files={"file": ("a.txt", b"x", "text/plain")},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_download_unknown_file(self, client):
        created = await _create(client)
        response = await client.get(f"/api/clipboard/{created['id']}/file/nope.txt")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_removes_files(self, client):
        created = await _create(client)
        uploaded = (await client.post(
            f"/api/clipboard/{created['id']}/upload",
            files={"file": ("a.txt", b"x", "text/plain")},
        )).json()

        await client.delete(f"/api/clipboard/{created['id']}")
        response = await client.get(f"/api/clipboard/{created['id']}/file/{uploaded['filename']}")
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_health_reports_database_failure(client, monkeypatch):
    import aiosqlite
    import routers.system

    async def broken_db():
        raise aiosqlite.OperationalError("unable to open database file")

    monkeypatch.setattr(routers.system, "get_db", broken_db)
    response = await client.get("/health")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_health_counts_only_live_clipboards(client, shift_clock):
    await client.post("/api/clipboard", json={"content": "old"})
    shift_clock(timedelta(hours=25))
    await client.post("/api/clipboard", json={"content": "new"})

    response = await client.get("/health")
    assert "(1 live clipboard(s))" in response.json()["message"]


@pytest.mark.asyncio
async def test_receive_code_is_stored_as_sent(client):
    created = (await client.post(
        "/api/clipboard", json={"content": "x", "sentToReceiveCode": " Alice "}
    )).json()
    assert created["sentToReceiveCode"] == " Alice "

    blank = (await client.post("/api/clipboard", json={"content": "x", "sentToReceiveCode": "  "})).json()
    assert blank["sentToReceiveCode"] is None
