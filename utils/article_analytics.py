import logging
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.article_view import ArticleView
from security.access import ViewCount
from security.ip_security import track_ip_fingerprint, update_ip_fingerprint_count

logger = logging.getLogger(__name__)


def _viewed_article_ids(fingerprint: str, start: datetime):
    rows = (
        db.session.query(ArticleView.article_id)
        .filter(ArticleView.fingerprint == fingerprint, ArticleView.created_at >= start)
        .distinct()
        .order_by(ArticleView.article_id)
        .all()
    )
    return [r.article_id for r in rows]


def get_article_view_count(fingerprint: str, days: Optional[int] = None) -> ViewCount:
    """
    Distinct articles viewed by ``fingerprint`` in the trailing window.
    Re-reading the same article never adds to the count.
    """
    if days is None:
        days = current_app.config.get("ARTICLE_VIEW_WINDOW_DAYS", 30)
    start = datetime.utcnow() - timedelta(days=days)

    try:
        articles = _viewed_article_ids(fingerprint, start)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error fetching view count for fingerprint %s", fingerprint)
        return ViewCount()

    return ViewCount(count=len(articles), articles=articles)


def track_article_view(article_id: str, fingerprint: str, saw_upsell: bool = False,
                       ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> bool:
    """
    Records one view event, then feeds the IP/fingerprint log used for abuse
    detection. Failures are logged and reported as False, never raised.
    """
    try:
        db.session.add(ArticleView(
            article_id=article_id,
            fingerprint=fingerprint,
            saw_upsell=bool(saw_upsell),
            ip_address=ip_address,
        ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error tracking view of article %s", article_id)
        return False

    if ip_address:
        track_ip_fingerprint(fingerprint, ip_address, user_agent)
        update_ip_fingerprint_count(ip_address)

    logger.info("Tracked view for article %s from IP %s", article_id, ip_address)
    return True
