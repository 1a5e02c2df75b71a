import json


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json() == {"status": "healthy"}


def test_history_requires_bearer_token(client):
    r = client.get("/items/1/history")
    assert r.status_code == 401


def test_list_and_summary(client, auth_header, seed):
    seed(1, [("exposure", 0, "0", True, b"e"), ("blurs", 0, "soft", False, b"b")])

    r = client.get("/items/1/history", headers=auth_header)
    assert r.status_code == 200, r.text
    assert [h["name"] for h in r.json()["history"]] == ["blurs soft (off)", "exposure (on)"]

    r = client.get("/items/1/history", headers=auth_header, params={"active_only": True})
    assert [h["name"] for h in r.json()["history"]] == ["exposure"]

    r = client.get("/items/1/history/summary", headers=auth_header)
    assert r.json()["summary"] == "blurs soft (off)\nexposure (on)"


def test_paste_replace_and_merge(client, auth_header, seed, history_repo):
    seed(1, [("blurs", 0, "soft", True, b"new")])
    seed(2, [("blurs", 0, "soft", True, b"old"), ("blurs", 1, "strong", True, b"s")])

    r = client.post("/items/2/history/paste", headers=auth_header, json={"source_id": 1, "merge": True})
    assert r.status_code == 200, r.text
    assert r.json() == {"item_id": 2, "entries_written": 1}
    live = client.get("/items/2/history", headers=auth_header).json()["history"]
    assert [h["name"] for h in live] == ["blurs soft (on)", "blurs strong (on)"]

    r = client.post("/items/2/history/paste", headers=auth_header, json={"source_id": 1})
    assert r.status_code == 200
    assert [e.params for e in history_repo.list_entries(2)] == [b"new"]


def test_paste_errors_map_to_status_codes(client, auth_header, seed):
    seed(1, [("exposure", 0, "0", True, b"e")])

    r = client.post("/items/1/history/paste", headers=auth_header, json={"source_id": 1})
    assert r.status_code == 400

    r = client.post("/items/2/history/paste", headers=auth_header, json={"source_id": 9})
    assert r.status_code == 404

    r = client.post("/items/2/history/paste", headers=auth_header, json={"merge": True})
    assert r.status_code == 422


def test_delete_history(client, auth_header, seed, history_repo):
    seed(3, [("exposure", 0, "0", True, b"e"), ("flip", 0, "0", True, b"f")])

    r = client.delete("/items/3/history", headers=auth_header)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "removed": 2}
    assert history_repo.list_entries(3) == []

    r = client.delete("/items/3/history", headers=auth_header)
    assert r.json() == {"ok": True, "removed": 0}


def test_load_sidecar(client, auth_header, history_repo, tmp_path):
    path = tmp_path / "4.json"
    path.write_text(json.dumps({"history_end": 1, "history": [{"operation": "exposure"}, {"operation": "flip"}]}))

    r = client.post("/items/4/history/sidecar", headers=auth_header, json={"path": str(path)})
    assert r.status_code == 200, r.text
    assert r.json()["entries_loaded"] == 2
    assert history_repo.get_active_length(4) == 1

    path.write_text("{")
    r = client.post("/items/4/history/sidecar", headers=auth_header, json={"path": str(path)})
    assert r.status_code == 422
    assert len(history_repo.list_entries(4)) == 2


def test_selection_batch_operations(client, auth_header, seed, history_repo, tmp_path):
    seed(1, [("exposure", 0, "0", True, b"e")])

    r = client.put("/selection", headers=auth_header, json={"item_ids": [1, 2, 3, 2]})
    assert r.json() == {"item_ids": [1, 2, 3]}
    assert client.get("/selection", headers=auth_header).json() == {"item_ids": [1, 2, 3]}

    r = client.post("/selection/history/paste", headers=auth_header, json={"source_id": 1})
    assert r.status_code == 200, r.text
    assert r.json() == {"ok": True, "processed": [2, 3], "failed": []}
    assert [e.operation for e in history_repo.list_entries(3)] == ["exposure"]

    path = tmp_path / "shared.json"
    path.write_text(json.dumps({"history": [{"operation": "flip"}]}))
    r = client.post("/selection/history/sidecar", headers=auth_header, json={"path": str(path)})
    assert r.json()["processed"] == [1, 2, 3]
    assert [e.operation for e in history_repo.list_entries(1)] == ["flip"]

    r = client.delete("/selection/history", headers=auth_header)
    assert r.json() == {"ok": True, "processed": [1, 2, 3], "failed": []}
    assert history_repo.list_entries(2) == []


def test_paste_on_selection_without_destination(client, auth_header, seed):
    seed(1, [("exposure", 0, "0", True, b"e")])
    client.put("/selection", headers=auth_header, json={"item_ids": [1]})

    r = client.post("/selection/history/paste", headers=auth_header, json={"source_id": 1})
    assert r.status_code == 400
