import io
import uuid

from fastapi.testclient import TestClient
from PIL import Image

from aiclub import models, services
from aiclub.main import app
from conftest import signup

client = TestClient(app)


def _make_jpeg() -> bytes:
    img = Image.new("RGB", (80, 45), "orange")
    bio = io.BytesIO()
    img.save(bio, format="JPEG")
    return bio.getvalue()


def _create_resource(admin, **data):
    form = {"title": "Intro to ML", "provider": "Coursera", "notionUrl": "https://notion.so/ml", "instructorName": "Andrew"}
    form.update(data)
    files = {"coverImage": ("cover.jpg", _make_jpeg(), "image/jpeg")}
    r = client.post("/admin/resources", headers=admin["headers"], data=form, files=files)
    assert r.status_code == 200, r.text
    return r.json()["item"]


def test_resource_create_and_public_views(admin):
    item = _create_resource(admin, quoteText="ignored", quoteAuthor="nobody")
    assert item["coverImage"].startswith("/uploads/resources/covers/")
    assert item["instructor"] == {"name": "Andrew", "image": None}
    assert item["visible"] is True

    cards = client.get("/resources").json()
    card = next(c for c in cards if c["id"] == item["id"])
    assert set(card) == {"id", "title", "provider", "coverImage", "instructor"}

    detail = client.get(f"/resources/{item['id']}")
    assert detail.status_code == 200
    body = detail.json()
    assert body["notionUrl"] == "https://notion.so/ml"
    assert body["quote"] is not None
    assert set(body["quote"]) == {"text", "author"}


def test_hidden_resources_are_admin_only(admin):
    item = _create_resource(admin, visible="false")
    assert item["visible"] is False
    assert item["id"] not in [c["id"] for c in client.get("/resources").json()]
    assert client.get(f"/resources/{item['id']}").status_code == 404
    assert client.get(f"/admin/resources/{item['id']}", headers=admin["headers"]).status_code == 200

    client.patch(f"/admin/resources/{item['id']}/visibility", headers=admin["headers"], json={"visible": True})
    assert client.get(f"/resources/{item['id']}").status_code == 200

    visible_only = client.get("/admin/resources", headers=admin["headers"], params={"includeHidden": "false"}).json()["items"]
    assert all(r["visible"] for r in visible_only)


def test_resource_partial_update_clears_notion_url(admin):
    item = _create_resource(admin)
    files = {"instructorImage": ("face.jpg", _make_jpeg(), "image/jpeg")}
    r = client.put(f"/admin/resources/{item['id']}", headers=admin["headers"], data={"title": "Deep Learning", "notionUrl": ""}, files=files)
    assert r.status_code == 200
    updated = r.json()["item"]
    assert updated["title"] == "Deep Learning"
    assert updated["provider"] == "Coursera"
    assert updated["notionUrl"] is None
    assert updated["instructor"]["image"].startswith("/uploads/resources/instructors/")
    assert updated["coverImage"] == item["coverImage"]


def test_resource_delete_and_missing(admin):
    item = _create_resource(admin)
    assert client.delete(f"/admin/resources/{item['id']}", headers=admin["headers"]).json() == {"success": True}
    assert client.delete(f"/admin/resources/{item['id']}", headers=admin["headers"]).status_code == 404
    assert client.get("/resources/999999").status_code == 404


def test_resource_rejects_bad_cover(admin):
    files = {"coverImage": ("cover.jpg", b"not really a jpeg", "image/jpeg")}
    r = client.post("/admin/resources", headers=admin["headers"], data={"title": "t", "provider": "p"}, files=files)
    assert r.status_code == 415


def test_quote_admin_crud(admin):
    h = admin["headers"]
    created = client.post("/admin/quotes", headers=h, json={"text": "Stay curious.", "author": "Club"}).json()["item"]
    assert created["visible"] is True
    updated = client.put(f"/admin/quotes/{created['id']}", headers=h, json={"author": "AI Club"}).json()["item"]
    assert updated["author"] == "AI Club"
    assert updated["text"] == "Stay curious."
    hidden = client.patch(f"/admin/quotes/{created['id']}/visibility", headers=h, json={"visible": False}).json()["item"]
    assert hidden["visible"] is False
    assert created["id"] in [q["id"] for q in client.get("/admin/quotes", headers=h).json()["items"]]
    assert client.delete(f"/admin/quotes/{created['id']}", headers=h).json() == {"success": True}
    assert client.put(f"/admin/quotes/{created['id']}", headers=h, json={"text": "x"}).status_code == 404
    assert client.post("/admin/quotes", headers=h, json={"text": " ", "author": "x"}).status_code == 400


def test_leaderboards_top_users_first(admin):
    h = admin["headers"]
    board = client.post("/admin/leaderboards", headers=h, json={"title": "Hackathon"}).json()["item"]
    low = client.post(f"/admin/leaderboards/{board['id']}/entries", headers=h, json={"name": "Team A", "points": 5}).json()["item"]
    client.post(f"/admin/leaderboards/{board['id']}/entries", headers=h, json={"name": "Team B", "points": 9})

    boards = client.get("/leaderboards").json()
    assert boards[0]["id"] == 0
    assert boards[0]["title"] == "Top Users"
    assert len(boards[0]["entries"]) <= 10
    stored = next(b for b in boards if b["id"] == board["id"])
    assert stored["entries"] == [{"name": "Team B", "points": 9}, {"name": "Team A", "points": 5}]

    r = client.put(f"/admin/leaderboards/{board['id']}/entries/{low['id']}", headers=h, json={"points": 12})
    assert r.json()["item"]["points"] == 12
    stored = next(b for b in client.get("/leaderboards").json() if b["id"] == board["id"])
    assert [e["name"] for e in stored["entries"]] == ["Team A", "Team B"]

    assert client.delete(f"/admin/leaderboards/999999/entries/{low['id']}", headers=h).status_code == 404
    assert client.delete(f"/admin/leaderboards/{board['id']}/entries/{low['id']}", headers=h).json() == {"success": True}
    assert client.delete(f"/admin/leaderboards/{board['id']}", headers=h).json() == {"success": True}
    assert board["id"] not in [b["id"] for b in client.get("/leaderboards").json()]


def test_admin_user_management(admin):
    h = admin["headers"]
    member_headers, body = signup(client)
    uid = body["user"]["id"]

    r = client.patch(f"/admin/users/{uid}", headers=h, json={"points": 7})
    assert r.status_code == 200
    assert r.json()["item"]["points"] == 7
    assert client.get("/users/profile", headers=member_headers).json()["points"] == 7

    assert client.patch(f"/admin/users/{uid}", headers=h, json={"role": "owner"}).status_code == 400
    assert client.patch(f"/admin/users/{uid}", headers=h, json={"points": -1}).status_code == 400
    assert client.patch(f"/admin/users/{uuid.uuid4()}", headers=h, json={"points": 1}).status_code == 404

    assert client.delete(f"/admin/users/{uid}", headers=h).json() == {"success": True}
    assert client.get("/users/profile", headers=member_headers).status_code == 401


def test_entry_for_vanished_board_is_a_client_error(admin, monkeypatch):
    # board removed between the lookup and the insert
    monkeypatch.setattr(services.LeaderboardService, "_board", lambda self, board_id: models.Leaderboard(id=board_id, title="gone"))
    r = client.post("/admin/leaderboards/987654/entries", headers=admin["headers"], json={"name": "Team Z", "points": 1})
    assert r.status_code == 400
    assert r.json()["detail"] == "constraint violation"
