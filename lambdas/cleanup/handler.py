"""
Cleanup Lambda function for expired admin sessions.

Triggered hourly by an EventBridge cron rule. Session validation already
rejects expired sessions on its own; this function removes the rows that
are past their expiry so the admin_sessions table stays small.

Key responsibilities:
- Report how many sessions are expired and how old they are
- Delete expired session rows
- Log cleanup statistics
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from sqlalchemy import select, func

from app.auth.sessions import SessionManager
from app.config import get_config
from database_orm.connection import get_session, init_connection, is_initialized
from database_orm.models import AdminSession
from database_sqlalchemy import as_utc

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)


def get_database_url() -> str:
    """
    Get the database URL from configuration.

    Raises:
        ValueError: If DATABASE_URL is not configured
    """
    database_url = get_config().get_database_url()
    if not database_url:
        raise ValueError("DATABASE_URL environment variable not set")
    return database_url


def scan_expired_sessions(now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Summarize expired admin sessions.

    Args:
        now: Reference time (default: current UTC time)

    Returns:
        Dict with statistics:
        - expired_count: Number of expired rows
        - active_count: Number of rows still valid
        - scan_time_iso: Reference time
        - oldest_expired_iso / oldest_expired_ago_hours (if any expired)
    """
    current = as_utc(now) if now is not None else datetime.now(timezone.utc)

    with get_session() as session:
        expired_count, oldest = session.execute(
            select(func.count(AdminSession.id), func.min(AdminSession.expires_at))
            .where(AdminSession.expires_at <= current)
        ).one()
        active_count = session.scalar(
            select(func.count(AdminSession.id)).where(AdminSession.expires_at > current)
        )

    stats = {
        'expired_count': expired_count or 0,
        'active_count': active_count or 0,
        'scan_time_iso': current.isoformat(),
    }

    if oldest is not None:
        oldest = as_utc(oldest)
        stats.update({
            'oldest_expired_iso': oldest.isoformat(),
            'oldest_expired_ago_hours': (current - oldest).total_seconds() / 3600,
        })

    return stats


def purge_expired_sessions(now: Optional[datetime] = None) -> int:
    """Delete expired admin sessions. Returns the number of rows removed."""
    settings = get_config().get_session_config()
    manager = SessionManager(secret=settings.secret, ttl=settings.ttl)
    return manager.purge_expired(now=now)


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for session cleanup.

    Args:
        event: EventBridge cron event
        context: Lambda context

    Returns:
        Dict with status code and cleanup statistics
    """
    now = datetime.now(timezone.utc)
    logger.info(f"Starting session cleanup at {now.isoformat()}")
    logger.info(f"Event: {json.dumps(event, default=str)}")

    try:
        if not is_initialized():
            init_connection(get_database_url())

        expired_stats = scan_expired_sessions(now)
        logger.info(f"Expired sessions statistics: {json.dumps(expired_stats, indent=2)}")

        purged_count = purge_expired_sessions(now)

        if purged_count > 0:
            logger.info(
                f"Removed {purged_count} expired sessions. "
                f"Oldest expired {expired_stats.get('oldest_expired_ago_hours', 0):.2f} hours ago."
            )
        else:
            logger.info("No expired sessions found.")

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Session cleanup completed successfully',
                'summary': {
                    'purged_count': purged_count,
                    'active_count': expired_stats['active_count'],
                    'scan_timestamp': expired_stats['scan_time_iso'],
                },
                'expired_stats': expired_stats,
            }, indent=2)
        }

    except Exception as e:
        logger.error(f"Session cleanup failed: {str(e)}", exc_info=True)
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Session cleanup failed',
                'error': str(e),
            })
        }
