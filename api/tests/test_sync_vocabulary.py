"""POST /api/sync/vocabulary"""

from sqlmodel import select

from app.models.models import VocabularyItem, DeviceInfo


def vocab_op(op_id, item_id="w1", operation="create", local_version=None, **data):
    payload = {"id": item_id, "spanishWord": "perro", "englishTranslation": "dog", "partOfSpeech": "Noun"}
    payload.update(data)
    op = {"id": op_id, "operation": operation, "data": payload}
    if local_version is not None:
        op["localVersion"] = local_version
    return op


def post_vocabulary(client, headers, operations, **body):
    body["operations"] = operations
    return client.post("/api/sync/vocabulary", json=body, headers=headers)


def test_create_inserts_item_with_version_one(client, auth_headers, session, user_id):
    body = post_vocabulary(client, auth_headers, [vocab_op("op1")]).json()

    assert body["processed"] == ["op1"]
    assert body["conflicts"] == []
    item = session.get(VocabularyItem, "w1")
    assert item.user_id == user_id
    assert (item.spanish, item.english, item.part_of_speech) == ("perro", "dog", "noun")
    assert item.version == 1

    change = body["operations"][0]
    assert change["entityType"] == "vocabulary"
    assert change["data"]["spanishWord"] == "perro"
    assert change["data"]["isDeleted"] is False


def test_create_of_existing_item_is_a_conflict(client, auth_headers, session):
    post_vocabulary(client, auth_headers, [vocab_op("op1")])
    body = post_vocabulary(client, auth_headers, [vocab_op("op2", englishTranslation="hound")]).json()

    assert body["processed"] == ["op2"]
    conflict = body["conflicts"][0]
    assert conflict["entityId"] == "w1"
    assert conflict["operationId"] == "op2"
    assert conflict["suggestedResolution"] == "newest"
    assert conflict["localData"]["english"] == "dog"
    assert session.get(VocabularyItem, "w1").english == "dog"


def test_update_with_current_version_applies_and_increments(client, auth_headers, session):
    post_vocabulary(client, auth_headers, [vocab_op("op1")])
    body = post_vocabulary(
        client, auth_headers,
        [{"id": "op2", "operation": "update", "localVersion": 1, "data": {"id": "w1", "english": "hound"}}],
    ).json()

    assert body["conflicts"] == []
    item = session.get(VocabularyItem, "w1")
    assert item.english == "hound"
    assert item.spanish == "perro"
    assert item.version == 2


def test_update_with_stale_version_is_a_conflict_and_leaves_row(client, auth_headers, session):
    post_vocabulary(client, auth_headers, [vocab_op("op1")])
    post_vocabulary(client, auth_headers, [vocab_op("op2", operation="update", local_version=1, notes="first")])

    body = post_vocabulary(
        client, auth_headers, [vocab_op("op3", operation="update", local_version=1, notes="stale")]
    ).json()

    assert body["processed"] == ["op3"]
    assert body["conflicts"][0]["localVersion"] == 2
    item = session.get(VocabularyItem, "w1")
    assert item.notes == "first"
    assert item.version == 2


def test_update_of_unknown_item_creates_it(client, auth_headers, session):
    body = post_vocabulary(client, auth_headers, [vocab_op("op1", operation="update")]).json()

    assert body["processed"] == ["op1"]
    assert session.get(VocabularyItem, "w1").version == 1


def test_delete_is_soft_and_reaches_incremental_clients(client, auth_headers, session):
    created = post_vocabulary(client, auth_headers, [vocab_op("op1")]).json()
    deleted = post_vocabulary(
        client, auth_headers,
        [{"id": "op2", "operation": "delete", "localVersion": 1, "data": {"id": "w1"}}],
        lastSyncTime=created["timestamp"],
    ).json()

    item = session.get(VocabularyItem, "w1")
    assert item.is_deleted is True
    assert item.version == 2
    assert deleted["operations"][0]["data"]["isDeleted"] is True

    full = post_vocabulary(client, auth_headers, []).json()
    assert full["operations"] == []


def test_delete_of_missing_item_is_an_error(client, auth_headers):
    body = post_vocabulary(client, auth_headers, [{"id": "op1", "operation": "delete", "data": {"id": "nope"}}]).json()

    assert body["processed"] == []
    assert body["errors"][0]["operation"] == "op1"
    assert "not found" in body["errors"][0]["error"]


def test_replayed_update_is_not_applied_twice(client, auth_headers, session):
    post_vocabulary(client, auth_headers, [vocab_op("op1")])
    update = [vocab_op("op2", operation="update", local_version=1, notes="x")]

    post_vocabulary(client, auth_headers, update)
    replay = post_vocabulary(client, auth_headers, update).json()

    assert replay["processed"] == ["op2"]
    assert replay["conflicts"] == []
    assert session.get(VocabularyItem, "w1").version == 2


def test_create_without_terms_is_an_error(client, auth_headers):
    body = post_vocabulary(client, auth_headers, [{"id": "op1", "operation": "create", "data": {"id": "w9"}}]).json()

    assert body["errors"][0]["operation"] == "op1"


def test_item_id_owned_by_another_user_is_an_error(client, auth_headers, session, other_user):
    session.add(VocabularyItem(id="w1", user_id=other_user.id, spanish="gato", english="cat"))
    session.commit()

    body = post_vocabulary(client, auth_headers, [vocab_op("op1")]).json()
    assert body["errors"][0]["operation"] == "op1"
    assert session.get(VocabularyItem, "w1").spanish == "gato"


def test_device_info_is_upserted(client, auth_headers, session, user_id):
    post_vocabulary(client, auth_headers, [], deviceId="device-1", deviceName="Laptop")
    post_vocabulary(client, auth_headers, [], deviceId="device-1")

    devices = session.exec(select(DeviceInfo)).all()
    assert len(devices) == 1
    assert devices[0].user_id == user_id
    assert devices[0].device_name == "Laptop"
    assert devices[0].last_sync_at is not None


def test_non_string_part_of_speech_is_an_operation_error(client, auth_headers, session):
    operations = [vocab_op("v-ok"), vocab_op("v-bad", item_id="w2", partOfSpeech=5)]

    response = post_vocabulary(client, auth_headers, operations)

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == ["v-ok"]
    assert [e["operation"] for e in body["errors"]] == ["v-bad"]
    assert "part_of_speech" in body["errors"][0]["error"]
    assert session.get(VocabularyItem, "w1") is not None
    assert session.get(VocabularyItem, "w2") is None


def test_non_string_gender_is_an_operation_error(client, auth_headers):
    body = post_vocabulary(client, auth_headers, [vocab_op("v-bad", gender=["f"])]).json()

    assert body["processed"] == []
    assert body["errors"][0]["operation"] == "v-bad"
