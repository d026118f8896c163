"""Tests for ui/app.py: JSON endpoints over the store facade."""

import threading
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from checklists.models import Checklist, Item
import ui.app
from ui.app import app, checklist_detail, get_store

from conftest import NOW


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_checklist_detail_text():
    assert checklist_detail(Checklist(name="A")) == "(No Items)"
    assert checklist_detail(Checklist(name="A", items=[Item(1, checked=True)])) == "All Done!"
    assert checklist_detail(Checklist(name="A", items=[Item(1), Item(2), Item(3, checked=True)])) == "2 Remaining"


def test_list_checklists(client):
    data = client.get("/api/checklists").json()
    assert data["selectedIndex"] == 0
    assert data["checklists"][0]["name"] == "List"
    assert data["checklists"][0]["detail"] == "(No Items)"


def test_add_and_edit_checklist(client, workspace):
    r = client.post("/api/checklists", json={"name": "Groceries", "iconName": "Groceries"})
    assert r.status_code == 200
    assert r.json()["index"] == 0
    assert (workspace / "checklists.json").exists()

    r = client.put("/api/checklists/0", json={"name": "Shopping"})
    assert r.json()["name"] == "Shopping"
    assert r.json()["index"] == 1  # List, Shopping


def test_add_checklist_invalid(client):
    r = client.post("/api/checklists", json={"name": ""})
    assert r.status_code == 422


def test_item_lifecycle(client, store, registry):
    due = (NOW + timedelta(days=1)).isoformat()
    r = client.post("/api/checklists/0/items", json={"text": "Milk", "dueDate": due, "shouldRemind": True})
    assert r.status_code == 200
    item_id = r.json()["ItemID"]
    assert len(registry.list_scheduled_reminders()) == 1

    r = client.post(f"/api/checklists/0/items/{item_id}/toggle")
    assert r.json()["Checked"] is True

    r = client.put(f"/api/checklists/0/items/{item_id}", json={"text": "Oat milk"})
    assert r.json()["Text"] == "Oat milk"

    data = client.get("/api/checklists/0/items").json()
    assert [i["Text"] for i in data["items"]] == ["Oat milk"]
    assert data["checklist"]["detail"] == "All Done!"

    r = client.delete(f"/api/checklists/0/items/{item_id}")
    assert r.json() == {"ok": True, "removed": item_id}
    assert registry.list_scheduled_reminders() == []


def test_invalid_due_date(client):
    r = client.post("/api/checklists/0/items", json={"text": "Milk", "dueDate": "soon"})
    assert r.status_code == 422


def test_unknown_checklist_is_404(client):
    assert client.get("/api/checklists/7/items").status_code == 404
    assert client.delete("/api/checklists/0/items/99").status_code == 404


def test_selection(client):
    client.post("/api/checklists", json={"name": "Another"})
    r = client.put("/api/selection", json={"selectedIndex": 1})
    assert r.json() == {"selectedIndex": 1}
    data = client.get("/api/selection").json()
    assert data["checklist"]["name"] == "List"
    assert client.put("/api/selection", json={"selectedIndex": 9}).status_code == 404
    assert client.put("/api/selection", json={"selectedIndex": "one"}).status_code == 422


def test_icons(client):
    icons = client.get("/api/icons").json()["icons"]
    assert icons[0] == "No Icon"
    assert "Groceries" in icons


def test_deliver_reminders(client, store):
    store.add_item(0, "Now", due_date=NOW, should_remind=True)
    delivered = client.post("/api/reminders/deliver").json()["delivered"]
    assert [r["message"] for r in delivered] == ["Now"]


def test_basic_auth(client, monkeypatch):
    monkeypatch.setenv("CHECKLISTS_USERNAME", "me")
    monkeypatch.setenv("CHECKLISTS_PASSWORD", "secret")
    assert client.get("/api/checklists").status_code == 401
    assert client.get("/api/checklists", auth=("me", "wrong")).status_code == 401
    assert client.get("/api/checklists", auth=("me", "secret")).status_code == 200


def _in_threads(target, n_threads):
    threads = [threading.Thread(target=target, args=(t,)) for t in range(n_threads)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


def test_concurrent_requests_keep_every_checklist(client, store, workspace):
    statuses = []

    def post(t):
        local = TestClient(app)
        for n in range(10):
            r = local.post("/api/checklists", json={"name": f"list {t}-{n}"})
            statuses.append(r.status_code)

    _in_threads(post, 4)
    assert statuses == [200] * 40
    data = client.get("/api/checklists").json()
    assert len(data["checklists"]) == 41
    assert len(store.engine.load().lists) == 41


def test_get_store_initializes_once(workspace, monkeypatch):
    monkeypatch.setattr(ui.app, "_store", None)
    seen = []
    _in_threads(lambda t: seen.append(get_store()), 8)
    assert len({id(s) for s in seen}) == 1
    assert [cl.name for cl in seen[0].checklists()] == ["List"]
