"""
Offline sync endpoints.

Each endpoint accepts a batch of client operations for one stream, applies
them independently and returns the rows changed since the client's
checkpoint.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
import logging

from app.core.database import get_session
from app.core.exceptions import PalabraException
from app.core.security import get_current_user_id
from app.schemas.sync import (
    SyncRequest,
    ReviewSyncResponse,
    StatsSyncResponse,
    VocabularySyncResponse,
)
from app.services.sync_service import sync_reviews, sync_stats, sync_vocabulary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def _run(stream: str, handler, session: Session, user_id: int, request: SyncRequest):
    try:
        return handler(session, user_id, request)
    except PalabraException:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Sync {stream} failed for user {user_id}: {str(e)}", exc_info=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sync {stream}"
        ) from e


@router.post("/reviews", response_model=ReviewSyncResponse)
async def sync_reviews_endpoint(
    request: SyncRequest,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """
    Upload review events and download reviews changed since lastSyncTime.

    Only `create` is accepted; replaying an operation id is acknowledged
    without creating a second row.
    """
    return _run("reviews", sync_reviews, session, user_id, request)


@router.post("/stats", response_model=StatsSyncResponse)
async def sync_stats_endpoint(
    request: SyncRequest,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """
    Upsert daily stats by date and download stats changed since lastSyncTime.

    `create` and `update` are both upserts; every applied write bumps the
    row's version by one.
    """
    return _run("stats", sync_stats, session, user_id, request)


@router.post("/vocabulary", response_model=VocabularySyncResponse)
async def sync_vocabulary_endpoint(
    request: SyncRequest,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session)
):
    """Upload vocabulary changes and download items changed since lastSyncTime."""
    return _run("vocabulary", sync_vocabulary, session, user_id, request)
