"""POST /api/sync/stats"""

from datetime import date, datetime, timedelta

from sqlmodel import select

from app.core.config import settings
from app.models.models import DailyStats, SyncReceipt


def stats_op(op_id, day="2024-03-01", operation="update", **data):
    payload = {
        "date": day,
        "newWordsAdded": 3,
        "cardsReviewed": 20,
        "sessionsCompleted": 2,
        "accuracyRate": 0.75,
        "timeSpent": 600000,
    }
    payload.update(data)
    return {"id": op_id, "operation": operation, "data": payload}


def post_stats(client, headers, operations, **body):
    body["operations"] = operations
    return client.post("/api/sync/stats", json=body, headers=headers)


def test_first_upsert_creates_row_with_version_one(client, auth_headers, session, user_id):
    body = post_stats(client, auth_headers, [stats_op("s1", operation="create")]).json()

    assert body["processed"] == ["s1"]
    stats = session.exec(select(DailyStats)).one()
    assert stats.user_id == user_id
    assert stats.date == date(2024, 3, 1)
    assert stats.version == 1
    assert stats.correct_reviews == 15
    assert stats.is_active is True

    returned = body["stats"][0]
    assert returned["date"] == "2024-03-01"
    assert returned["cardsReviewed"] == 20
    assert returned["accuracyRate"] == 0.75
    assert returned["version"] == 1


def test_upsert_of_existing_date_increments_version_by_one(client, auth_headers, session):
    post_stats(client, auth_headers, [stats_op("s1")])
    post_stats(client, auth_headers, [stats_op("s2", cardsReviewed=40, accuracyRate=0.5)])

    rows = session.exec(select(DailyStats)).all()
    assert len(rows) == 1
    assert rows[0].version == 2
    assert rows[0].cards_reviewed == 40
    assert rows[0].correct_reviews == 20


def test_replayed_operation_does_not_bump_version(client, auth_headers, session):
    operations = [stats_op("s1"), stats_op("s2", day="2024-03-02")]

    first = post_stats(client, auth_headers, operations).json()
    second = post_stats(client, auth_headers, operations).json()

    assert first["processed"] == ["s1", "s2"]
    assert second["processed"] == ["s1", "s2"]
    assert {row.version for row in session.exec(select(DailyStats)).all()} == {1}
    assert len(session.exec(select(SyncReceipt)).all()) == 2


def test_two_operations_for_same_date_in_one_batch(client, auth_headers, session):
    body = post_stats(client, auth_headers, [stats_op("s1"), stats_op("s2", cardsReviewed=0)]).json()

    assert body["processed"] == ["s1", "s2"]
    stats = session.exec(select(DailyStats)).one()
    assert stats.version == 2
    assert stats.is_active is False


def test_bad_operation_is_reported_and_others_persist(client, auth_headers, session):
    operations = [
        stats_op("s1"),
        stats_op("bad", day="not-a-date"),
        stats_op("s3", day="2024-03-03"),
    ]
    body = post_stats(client, auth_headers, operations).json()

    assert body["processed"] == ["s1", "s3"]
    assert [e["operation"] for e in body["errors"]] == ["bad"]
    assert len(session.exec(select(DailyStats)).all()) == 2


def test_delete_is_unsupported(client, auth_headers):
    body = post_stats(client, auth_headers, [{"id": "d1", "operation": "delete", "data": {"date": "2024-03-01"}}]).json()

    assert body["processed"] == []
    assert body["errors"][0]["operation"] == "d1"


def test_accuracy_out_of_range_is_rejected(client, auth_headers):
    body = post_stats(client, auth_headers, [stats_op("s1", accuracyRate=1.5)]).json()
    assert body["errors"][0]["operation"] == "s1"


def test_stats_are_ordered_by_date_descending_and_unbounded(client, auth_headers, session, user_id):
    start = date(2023, 1, 1)
    session.add_all([
        DailyStats(user_id=user_id, date=start + timedelta(days=i), cards_reviewed=1, last_synced_at=datetime(2024, 1, 1))
        for i in range(1200)
    ])
    session.commit()

    body = post_stats(client, auth_headers, []).json()
    dates = [row["date"] for row in body["stats"]]

    assert len(dates) == 1200
    assert dates == sorted(dates, reverse=True)
    assert body["hasMore"] is False


def test_stats_page_size_with_cursor(client, auth_headers, session, user_id, monkeypatch):
    monkeypatch.setattr(settings, "sync_stats_page_size", 2)
    session.add_all([
        DailyStats(user_id=user_id, date=date(2024, 1, day), last_synced_at=datetime(2024, 1, 10))
        for day in (1, 2, 3)
    ])
    session.commit()

    first = post_stats(client, auth_headers, []).json()
    rest = post_stats(client, auth_headers, [], cursor=first["nextCursor"]).json()

    assert [row["date"] for row in first["stats"]] == ["2024-01-03", "2024-01-02"]
    assert first["hasMore"] is True
    assert [row["date"] for row in rest["stats"]] == ["2024-01-01"]
    assert rest["hasMore"] is False


def test_only_stats_changed_after_checkpoint(client, auth_headers):
    first = post_stats(client, auth_headers, [stats_op("s1", day="2024-03-01")]).json()
    second = post_stats(
        client, auth_headers, [stats_op("s2", day="2024-03-02")], lastSyncTime=first["timestamp"]
    ).json()

    assert [row["date"] for row in second["stats"]] == ["2024-03-02"]
