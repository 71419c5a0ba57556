from datetime import timedelta

from sqlmodel import select

import prune_sync_receipts
from app.models.enums import SyncStream
from app.models.models import SyncReceipt
from app.utils.time_utils import utcnow

from conftest import test_engine as sqlite_engine


def test_prunes_only_receipts_past_retention(session, other_user, monkeypatch):
    monkeypatch.setattr(prune_sync_receipts, "engine", sqlite_engine)
    now = utcnow()
    session.add_all([
        SyncReceipt(user_id=other_user.id, stream=SyncStream.STATS.value, operation_id="old",
                    created_at=now - timedelta(days=40)),
        SyncReceipt(user_id=other_user.id, stream=SyncStream.STATS.value, operation_id="recent",
                    created_at=now - timedelta(days=2)),
    ])
    session.commit()

    assert prune_sync_receipts.prune_sync_receipts(30) == 1

    session.expire_all()
    remaining = session.exec(select(SyncReceipt)).all()
    assert [r.operation_id for r in remaining] == ["recent"]
