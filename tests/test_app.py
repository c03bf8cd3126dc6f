import pytest
from fastapi.testclient import TestClient

from notevault.app import app, reset_vault


@pytest.fixture
def client(vault_env):
    reset_vault()
    with TestClient(app) as c:
        yield c
    reset_vault()


def test_note_crud_pin_and_trash(client):
    r = client.post("/api/notes", json={"content": "# Hello\n", "tags": ["X", "x "]})
    assert r.status_code == 201
    note = r.json()
    assert note["title"] == "Hello"
    assert note["tags"] == ["x"]
    nid = note["id"]

    r = client.put(f"/api/notes/{nid}/body", json={"content": "# Hello again\n"})
    assert r.json()["content"] == "# Hello again\n"

    r = client.post(f"/api/notes/{nid}/pin")
    assert r.json()["pinned"] is True and r.json()["pin_order"] == 0

    r = client.put(f"/api/notes/{nid}/tags", json={"tags": ["b", "a"]})
    assert r.json()["tags"] == ["a", "b"]

    r = client.post(f"/api/notes/{nid}/open")
    assert r.json()["last_opened_at"] is not None

    assert [n["id"] for n in client.get("/api/notes", params={"sort": "title"}).json()] == [nid]

    assert client.delete(f"/api/notes/{nid}").status_code == 200
    assert client.get(f"/api/notes/{nid}").status_code == 404
    assert [d["id"] for d in client.get("/api/trash").json()] == [nid]

    r = client.post(f"/api/trash/{nid}/restore")
    assert r.status_code == 200
    assert r.json()["content"] == "# Hello again\n"
    assert client.post("/api/trash/purge").json() == {"purged": []}


def test_duplicate_and_search(client):
    nid = client.post("/api/notes", json={"content": "# Soup\n\nleeks\n"}).json()["id"]
    dup = client.post(f"/api/notes/{nid}/duplicate")
    assert dup.status_code == 201
    assert dup.json()["id"] != nid
    assert len(client.get("/api/notes", params={"search": "LEEKS"}).json()) == 2
    assert client.get("/api/notes", params={"sort": "sideways"}).status_code == 422


def test_not_found_and_malformed(client, vault_env):
    r = client.get("/api/notes/missing")
    assert r.status_code == 404
    assert r.json() == {"detail": "Note 'missing' not found"}

    nid = client.post("/api/notes", json={"content": "# Fragile\n"}).json()["id"]
    path = next((vault_env / "vault").glob("fragile-*.md"))
    path.write_text(f"---\nid: {nid}\ncreated_at: garbage\n---\n\nbody", encoding="utf-8")
    assert client.get(f"/api/notes/{nid}").status_code == 422


def test_changes_and_migrate(client):
    client.post("/api/notes", json={"content": "# Fresh\n"})
    changed = client.get("/api/changes", params={"since": "2000-01-01T00:00:00Z"}).json()
    assert [c["filename"].startswith("fresh-") for c in changed] == [True]
    assert client.post("/api/migrate").json() == {"ran": False, "migrated": 0, "skipped": 0}
