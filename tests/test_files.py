"""文件节点接口集成测试：创建、层级校验、查询、分页、公开状态与内容读取。"""

from fastapi.testclient import TestClient

from helpers import API, b64, register_and_login


def _create(client: TestClient, headers: dict, **body):
    return client.post(f"{API}/files", json=body, headers=headers)


def test_folder_file_and_content_flow(client: TestClient):
    headers, user_id = register_and_login(client)

    folder = _create(client, headers, name="docs", type="folder")
    assert folder.status_code == 201
    folder_data = folder.json()["data"]
    assert folder_data["type"] == "folder"
    assert folder_data["parentId"] == 0
    assert folder_data["isPublic"] is False
    assert folder_data["userId"] == user_id

    file_resp = _create(client, headers, name="a.txt", type="file", parentId=folder_data["id"], data="aGVsbG8=")
    assert file_resp.status_code == 201
    file_data = file_resp.json()["data"]
    assert file_data["parentId"] == folder_data["id"]
    assert "localPath" not in file_data

    content = client.get(f"{API}/files/{file_data['id']}/data", headers=headers)
    assert content.status_code == 200
    assert content.content == b"hello"
    assert content.headers["content-type"].startswith("text/plain")


def test_file_node_has_blob_and_folder_has_none(client: TestClient, db_session_fixture, blob_store):
    from files_manager.crud.file_nodes import file_node_crud

    headers, _ = register_and_login(client)
    folder_id = _create(client, headers, name="f", type="folder").json()["data"]["id"]
    file_id = _create(client, headers, name="b.bin", type="file", data=b64(b"\x00\x01")).json()["data"]["id"]

    folder = file_node_crud.get(db_session_fixture, folder_id)
    node = file_node_crud.get(db_session_fixture, file_id)
    assert folder.local_path is None
    assert node.local_path is not None
    assert blob_store.read(node.local_path) == b"\x00\x01"


def test_parent_id_as_string_is_accepted(client: TestClient):
    headers, _ = register_and_login(client)
    folder_id = _create(client, headers, name="docs", type="folder").json()["data"]["id"]

    resp = _create(client, headers, name="x.txt", type="file", parentId=str(folder_id), data="eA==")
    assert resp.status_code == 201
    assert resp.json()["data"]["parentId"] == folder_id


def test_create_validation_errors(client: TestClient):
    headers, _ = register_and_login(client)

    cases = [
        ({"type": "folder"}, "Missing name"),
        ({"name": "", "type": "folder"}, "Missing name"),
        ({"name": "a"}, "Missing type"),
        ({"name": "a", "type": "video"}, "Missing type"),
        ({"name": "a", "type": "file"}, "Missing data"),
        ({"name": "a", "type": "image", "data": ""}, "Missing data"),
        ({"name": "a", "type": "file", "data": "a"}, "Invalid data"),
        ({"name": "a", "type": "folder", "parentId": 999999}, "Parent not found"),
        ({"name": "a", "type": "folder", "parentId": "not-an-id"}, "Parent not found"),
    ]
    for body, message in cases:
        resp = _create(client, headers, **body)
        assert resp.status_code == 400, body
        assert resp.json()["msg"] == message, body


def test_create_under_non_folder_parent_fails(client: TestClient, blob_store):
    headers, _ = register_and_login(client)
    file_id = _create(client, headers, name="a.txt", type="file", data="aGVsbG8=").json()["data"]["id"]
    blobs_before = len(list(blob_store.root.iterdir()))

    resp = _create(client, headers, name="b.txt", type="file", parentId=file_id, data="aGVsbG8=")
    assert resp.status_code == 400
    assert resp.json()["msg"] == "Parent is not a folder"
    # 校验失败时不应写入任何文件
    assert len(list(blob_store.root.iterdir())) == blobs_before


def test_create_requires_token(client: TestClient):
    resp = client.post(f"{API}/files", json={"name": "a", "type": "folder"})
    assert resp.status_code == 401


def test_get_metadata_is_owner_scoped(client: TestClient):
    owner_headers, _ = register_and_login(client)
    other_headers, _ = register_and_login(client)
    node_id = _create(client, owner_headers, name="docs", type="folder").json()["data"]["id"]

    own = client.get(f"{API}/files/{node_id}", headers=owner_headers)
    assert own.status_code == 200
    assert own.json()["data"]["name"] == "docs"

    assert client.get(f"{API}/files/{node_id}", headers=other_headers).status_code == 404
    assert client.get(f"{API}/files/999999", headers=owner_headers).status_code == 404
    assert client.get(f"{API}/files/garbage", headers=owner_headers).status_code == 404


def test_list_pagination_partitions_results(client: TestClient):
    headers, _ = register_and_login(client)
    folder_id = _create(client, headers, name="bulk", type="folder").json()["data"]["id"]
    created = [
        _create(client, headers, name=f"f{i}", type="folder", parentId=folder_id).json()["data"]["id"]
        for i in range(25)
    ]

    page0 = client.get(f"{API}/files", params={"parentId": folder_id, "page": 0}, headers=headers).json()["data"]
    page1 = client.get(f"{API}/files", params={"parentId": folder_id, "page": 1}, headers=headers).json()["data"]
    page2 = client.get(f"{API}/files", params={"parentId": folder_id, "page": 2}, headers=headers).json()["data"]

    assert len(page0) == 20
    assert len(page1) == 5
    assert page2 == []
    ids = [item["id"] for item in page0 + page1]
    assert ids == created
    assert not set(item["id"] for item in page0) & set(item["id"] for item in page1)


def test_list_root_only_returns_top_level_nodes(client: TestClient):
    headers, _ = register_and_login(client)
    top = _create(client, headers, name="top", type="folder").json()["data"]["id"]
    _create(client, headers, name="child", type="folder", parentId=top)

    root_items = client.get(f"{API}/files", headers=headers).json()["data"]
    assert [item["id"] for item in root_items] == [top]

    children = client.get(f"{API}/files", params={"parentId": top}, headers=headers).json()["data"]
    assert [item["name"] for item in children] == ["child"]


def test_list_is_owner_scoped_and_tolerates_bad_parent(client: TestClient):
    owner_headers, _ = register_and_login(client)
    other_headers, _ = register_and_login(client)
    _create(client, owner_headers, name="mine", type="folder")

    assert client.get(f"{API}/files", headers=other_headers).json()["data"] == []
    bad = client.get(f"{API}/files", params={"parentId": "nope"}, headers=owner_headers)
    assert bad.status_code == 200
    assert bad.json()["data"] == []


def test_duplicate_names_are_allowed(client: TestClient):
    headers, _ = register_and_login(client)
    first = _create(client, headers, name="same", type="folder")
    second = _create(client, headers, name="same", type="folder")
    assert first.status_code == second.status_code == 201
    assert first.json()["data"]["id"] != second.json()["data"]["id"]


def test_publish_and_unpublish(client: TestClient):
    owner_headers, _ = register_and_login(client)
    other_headers, _ = register_and_login(client)
    node_id = _create(client, owner_headers, name="a.txt", type="file", data="aGVsbG8=").json()["data"]["id"]

    published = client.put(f"{API}/files/{node_id}/publish", headers=owner_headers)
    assert published.status_code == 200
    assert published.json()["data"]["isPublic"] is True

    again = client.put(f"{API}/files/{node_id}/publish", headers=owner_headers)
    assert again.status_code == 200
    assert again.json()["data"]["isPublic"] is True

    unpublished = client.put(f"{API}/files/{node_id}/unpublish", headers=owner_headers)
    assert unpublished.status_code == 200
    assert unpublished.json()["data"]["isPublic"] is False

    assert client.put(f"{API}/files/{node_id}/publish", headers=other_headers).status_code == 404
    assert client.put(f"{API}/files/999999/publish", headers=owner_headers).status_code == 404
    assert client.put(f"{API}/files/xyz/unpublish", headers=owner_headers).status_code == 404


def test_private_content_is_hidden_from_others(client: TestClient):
    owner_headers, _ = register_and_login(client)
    other_headers, _ = register_and_login(client)
    node_id = _create(client, owner_headers, name="secret.txt", type="file", data="aGVsbG8=").json()["data"]["id"]

    assert client.get(f"{API}/files/{node_id}/data", headers=owner_headers).status_code == 200

    anonymous = client.get(f"{API}/files/{node_id}/data")
    other = client.get(f"{API}/files/{node_id}/data", headers=other_headers)
    bogus = client.get(f"{API}/files/{node_id}/data", headers={"X-Token": "bogus"})
    missing = client.get(f"{API}/files/999999/data")
    for resp in (anonymous, other, bogus, missing):
        assert resp.status_code == 404
        assert resp.json()["msg"] == "Not found"


def test_public_content_is_readable_by_anyone(client: TestClient):
    owner_headers, _ = register_and_login(client)
    node_id = _create(
        client, owner_headers, name="shared.txt", type="file", data="aGVsbG8=", isPublic=True
    ).json()["data"]["id"]

    resp = client.get(f"{API}/files/{node_id}/data")
    assert resp.status_code == 200
    assert resp.content == b"hello"


def test_folder_content_is_unsupported(client: TestClient):
    headers, _ = register_and_login(client)
    folder_id = _create(client, headers, name="docs", type="folder").json()["data"]["id"]

    resp = client.get(f"{API}/files/{folder_id}/data", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["msg"] == "A folder doesn't have content"


def test_missing_blob_is_not_found(client: TestClient, blob_store, db_session_fixture):
    from files_manager.crud.file_nodes import file_node_crud

    headers, _ = register_and_login(client)
    node_id = _create(client, headers, name="a.txt", type="file", data="aGVsbG8=").json()["data"]["id"]
    node = file_node_crud.get(db_session_fixture, node_id)
    blob_store.discard(node.local_path)

    assert client.get(f"{API}/files/{node_id}/data", headers=headers).status_code == 404


def test_unknown_size_falls_back_to_original(client: TestClient):
    headers, _ = register_and_login(client)
    node_id = _create(client, headers, name="a.txt", type="file", data="aGVsbG8=").json()["data"]["id"]

    resp = client.get(f"{API}/files/{node_id}/data", params={"size": 42}, headers=headers)
    assert resp.status_code == 200
    assert resp.content == b"hello"

    missing_variant = client.get(f"{API}/files/{node_id}/data", params={"size": 100}, headers=headers)
    assert missing_variant.status_code == 404


def test_non_image_uploads_do_not_enqueue_jobs(client: TestClient, job_queue):
    headers, _ = register_and_login(client)
    _create(client, headers, name="docs", type="folder")
    _create(client, headers, name="a.txt", type="file", data="aGVsbG8=")
    assert job_queue.pending_count() == 0


def test_non_base64_data_is_rejected(client: TestClient, blob_store):
    headers, _ = register_and_login(client)

    for data in ("!!!!", "aGVs bG8=", "a"):
        resp = _create(client, headers, name="bad.txt", type="file", data=data)
        assert resp.status_code == 400, data
        assert resp.json()["msg"] == "Invalid data", data

    assert not blob_store.root.exists() or list(blob_store.root.iterdir()) == []
    assert client.get(f"{API}/files", headers=headers).json()["data"] == []


def test_unpadded_base64_is_accepted(client: TestClient):
    headers, _ = register_and_login(client)
    node_id = _create(client, headers, name="a.txt", type="file", data="aGVsbG8").json()["data"]["id"]

    assert client.get(f"{API}/files/{node_id}/data", headers=headers).content == b"hello"


def test_image_upload_succeeds_when_queue_is_unreachable(client: TestClient, job_queue, monkeypatch):
    import redis

    def broken_enqueue(job):
        raise redis.ConnectionError("queue down")

    monkeypatch.setattr(job_queue, "enqueue", broken_enqueue)
    headers, _ = register_and_login(client)

    resp = _create(client, headers, name="photo.png", type="image", data=b64(b"\x89PNG"))
    assert resp.status_code == 201
    node_id = resp.json()["data"]["id"]
    assert client.get(f"{API}/files/{node_id}", headers=headers).status_code == 200
