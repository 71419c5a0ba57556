"""
Script to delete sync receipts older than the retention window.

Receipts only need to outlive the longest time a client may hold an
unacknowledged operation before replaying it.
"""
import argparse
import sys
from datetime import timedelta
from sqlalchemy import delete
from sqlmodel import Session
from app.core.config import settings
from app.core.database import engine
from app.models.models import SyncReceipt
from app.utils.time_utils import utcnow
import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def prune_sync_receipts(retention_days: int) -> int:
    """
    Delete receipts created more than retention_days ago.

    Returns:
        Number of receipts deleted
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    with Session(engine) as session:
        try:
            logger.info(f"Deleting sync receipts created before {cutoff.isoformat()}...")
            result = session.execute(delete(SyncReceipt).where(SyncReceipt.created_at < cutoff))
            deleted = result.rowcount or 0
            session.commit()
            logger.info(f"Deleted {deleted} sync receipts")
            return deleted
        except Exception as e:
            session.rollback()
            logger.error("Error pruning sync receipts: %s", e, exc_info=True)
            raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Delete old sync receipts")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.sync_receipt_retention_days,
        help="Retention window in days (default: %(default)s)",
    )
    args = parser.parse_args()

    logger.info("Starting sync receipt pruning...")
    try:
        prune_sync_receipts(args.days)
        logger.info("Successfully completed!")
    except Exception as e:
        logger.error("Error during sync receipt pruning: %s", e, exc_info=True)
        sys.exit(1)
