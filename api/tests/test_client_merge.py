from app.client.merge import PENDING_FLAG, STREAM_MERGE, merge, remote_wins, vocabulary_rank, stats_rank


def word(version, updated_at, **extra):
    return {"id": "w1", "version": version, "updatedAt": updated_at, **extra}


def test_remote_replaces_older_local():
    local = {"w1": word(1, "2024-01-01T00:00:00.000000Z", english="dog")}
    merged, changed, removed = merge(local, [word(2, "2024-01-02T00:00:00.000000Z", english="hound")], "id", vocabulary_rank)

    assert merged["w1"]["english"] == "hound"
    assert changed == ["w1"]
    assert removed == []
    assert local["w1"]["english"] == "dog"


def test_strictly_newer_local_is_kept():
    local = {"w1": word(3, "2024-01-03T00:00:00.000000Z", english="mine")}
    merged, changed, _ = merge(local, [word(2, "2024-01-02T00:00:00.000000Z", english="theirs")], "id", vocabulary_rank)

    assert merged["w1"]["english"] == "mine"
    assert changed == []


def test_equal_rank_goes_to_server():
    local = {"w1": word(2, "2024-01-02T00:00:00.000000Z", english="mine")}
    remote = word(2, "2024-01-02T00:00:00.000000Z", english="theirs")
    assert remote_wins(local["w1"], remote, vocabulary_rank)


def test_pending_local_record_always_loses():
    local = {"w1": word(9, "2030-01-01T00:00:00.000000Z", **{PENDING_FLAG: True})}
    merged, changed, _ = merge(local, [word(1, "2024-01-01T00:00:00.000000Z")], "id", vocabulary_rank)

    assert PENDING_FLAG not in merged["w1"]
    assert changed == ["w1"]


def test_deleted_remote_removes_key():
    local = {"w1": word(1, "2024-01-01T00:00:00.000000Z")}
    merged, changed, removed = merge(
        local, [word(2, "2024-01-02T00:00:00.000000Z", isDeleted=True)], "id", vocabulary_rank
    )

    assert merged == {}
    assert changed == []
    assert removed == ["w1"]


def test_deleted_remote_for_unknown_key_is_ignored():
    merged, changed, removed = merge({}, [word(2, "2024-01-02T00:00:00.000000Z", isDeleted=True)], "id", vocabulary_rank)
    assert (merged, changed, removed) == ({}, [], [])


def test_stats_rank_by_version_then_sync_time():
    older = {"date": "2024-03-01", "version": 2, "lastSyncedAt": "2024-03-02T00:00:00.000000Z"}
    newer = {"date": "2024-03-01", "version": 3, "lastSyncedAt": "2024-03-01T00:00:00.000000Z"}

    assert stats_rank(newer) > stats_rank(older)
    assert stats_rank({"date": "2024-03-01"}) is None


def test_stream_keys():
    assert STREAM_MERGE["stats"][0] == "date"
    key, rank = STREAM_MERGE["reviews"]
    merged, changed, _ = merge(
        {}, [{"id": "r1", "lastSyncedAt": "2024-01-01T00:00:00.000000Z"}], key, rank
    )
    assert list(merged) == ["r1"]
    assert changed == ["r1"]
