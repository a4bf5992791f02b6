import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.ip_blocking import IpBlocking
from models.fingerprint_ip_tracking import FingerprintIpTracking
from security.access import AccessDecision, IPSecurityCheck, DEFAULT_IP_BLOCK_REASON
from utils.audit import log_event

logger = logging.getLogger(__name__)

LOOPBACK_IP = "127.0.0.1"


def get_client_ip(request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # may hold a proxy chain, the first entry is the client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    cf_connecting_ip = request.headers.get("CF-Connecting-IP")
    if cf_connecting_ip:
        return cf_connecting_ip

    return LOOPBACK_IP


def get_user_agent(request) -> str:
    return request.headers.get("User-Agent") or "Unknown"


def _get_ip_record(ip_address: str):
    return IpBlocking.query.filter_by(ip_address=ip_address).first()


def _get_or_create_ip_record(ip_address: str) -> IpBlocking:
    row = _get_ip_record(ip_address)
    if not row:
        row = IpBlocking(ip_address=ip_address, is_blocked=False, fingerprint_count=0)
        db.session.add(row)
    return row


def check_ip_security(ip_address: str) -> IPSecurityCheck:
    """
    Blocked records short-circuit with their stored reason. Otherwise the
    trailing-window signals are evaluated and ``should_block`` tells the
    caller to block now. Store errors resolve to a clear result.
    """
    try:
        row = _get_ip_record(ip_address)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error checking IP blocking status for %s", ip_address)
        return IPSecurityCheck.clear()

    if row and row.is_blocked:
        return IPSecurityCheck(
            is_blocked=True,
            block_reason=row.block_reason or DEFAULT_IP_BLOCK_REASON,
        )

    return _detect_suspicious_activity(ip_address)


def _distinct_fingerprint_count(ip_address: str, since: datetime) -> int:
    return (
        db.session.query(func.count(func.distinct(FingerprintIpTracking.fingerprint_id)))
        .filter(
            FingerprintIpTracking.ip_address == ip_address,
            FingerprintIpTracking.created_at >= since,
        )
        .scalar()
    ) or 0


def _request_count(ip_address: str, since: datetime) -> int:
    return (
        FingerprintIpTracking.query
        .filter(
            FingerprintIpTracking.ip_address == ip_address,
            FingerprintIpTracking.created_at >= since,
        )
        .count()
    )


def _detect_suspicious_activity(ip_address: str) -> IPSecurityCheck:
    now = datetime.utcnow()
    max_fingerprints = current_app.config.get("MAX_FINGERPRINTS_PER_IP", 10)
    window_hours = current_app.config.get("FINGERPRINT_WINDOW_HOURS", 24)
    max_requests = current_app.config.get("MAX_REQUESTS_PER_MINUTE", 30)
    rate_seconds = current_app.config.get("REQUEST_RATE_WINDOW_SECONDS", 60)

    try:
        fingerprint_count = _distinct_fingerprint_count(ip_address, now - timedelta(hours=window_hours))
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error checking fingerprint activity for %s", ip_address)
        return IPSecurityCheck.clear()

    # Fan-out wins over rate when both trip
    if fingerprint_count >= max_fingerprints:
        return IPSecurityCheck(
            is_blocked=False,
            should_block=True,
            fingerprint_count=fingerprint_count,
            block_reason=f"Too many unique fingerprints ({fingerprint_count}) from single IP in {window_hours}h",
        )

    try:
        recent_requests = _request_count(ip_address, now - timedelta(seconds=rate_seconds))
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error checking recent requests for %s", ip_address)
        return IPSecurityCheck.clear(fingerprint_count)

    if recent_requests >= max_requests:
        return IPSecurityCheck(
            is_blocked=False,
            should_block=True,
            fingerprint_count=fingerprint_count,
            block_reason=f"Too many requests ({recent_requests}) per minute",
        )

    return IPSecurityCheck.clear(fingerprint_count)


def block_ip(ip_address: str, reason: str) -> bool:
    """
    Idempotent: repeated calls keep the IP blocked and the latest reason wins.
    """
    now = datetime.utcnow()
    # Second pass covers losing the race to create the row
    for attempt in range(2):
        try:
            row = _get_or_create_ip_record(ip_address)
            row.is_blocked = True
            row.blocked_at = now
            row.block_reason = reason
            row.updated_at = now
            db.session.commit()
            break
        except IntegrityError:
            db.session.rollback()
            if attempt:
                logger.exception("Error blocking IP %s", ip_address)
                return False
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Error blocking IP %s", ip_address)
            return False

    logger.warning("Blocked IP %s: %s", ip_address, reason)
    log_event("IP_BLOCKED", entity="ip", entity_id=ip_address, ip=ip_address, metadata={"reason": reason})
    return True


def unblock_ip(ip_address: str) -> bool:
    """Administrative Blocked -> Clear transition. Returns False if the IP was not blocked."""
    try:
        row = _get_ip_record(ip_address)
        if not row or not row.is_blocked:
            return False
        previous_reason = row.block_reason
        row.is_blocked = False
        row.block_reason = None
        row.blocked_at = None
        row.updated_at = datetime.utcnow()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error unblocking IP %s", ip_address)
        return False

    logger.info("Unblocked IP %s", ip_address)
    log_event("IP_UNBLOCKED", entity="ip", entity_id=ip_address, ip=ip_address,
              metadata={"previous_reason": previous_reason})
    return True


def list_blocked_ips(limit: int = 200):
    return (
        IpBlocking.query
        .filter_by(is_blocked=True)
        .order_by(IpBlocking.blocked_at.desc())
        .limit(limit)
        .all()
    )


def track_ip_fingerprint(fingerprint_id: str, ip_address: str, user_agent: str) -> None:
    """
    Instrumentation hook, called once per tracked action. Never raises.
    """
    now = datetime.utcnow()
    try:
        db.session.add(FingerprintIpTracking(
            fingerprint_id=fingerprint_id,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
            created_at=now,
        ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error tracking IP-fingerprint association for %s", ip_address)
        return

    try:
        row = _get_or_create_ip_record(ip_address)
        row.last_seen = now
        row.updated_at = now
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error updating IP record for %s", ip_address)


def update_ip_fingerprint_count(ip_address: str) -> None:
    try:
        fingerprint_count = (
            db.session.query(func.count(func.distinct(FingerprintIpTracking.fingerprint_id)))
            .filter(FingerprintIpTracking.ip_address == ip_address)
            .scalar()
        ) or 0

        row = _get_ip_record(ip_address)
        if not row:
            return
        row.fingerprint_count = fingerprint_count
        row.updated_at = datetime.utcnow()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error updating fingerprint count for %s", ip_address)


def check_ip_before_request_server(request) -> AccessDecision:
    """
    HTTP-boundary check: evaluate the caller's IP and block it now when the
    signals say so. Any internal error fails open.
    """
    try:
        ip_address = get_client_ip(request)
        security_check = check_ip_security(ip_address)

        if security_check.is_blocked:
            return AccessDecision.deny(security_check.block_reason)

        if security_check.should_block:
            block_ip(ip_address, security_check.block_reason)
            return AccessDecision.deny(security_check.block_reason)

        return AccessDecision.allow()
    except Exception:
        logger.exception("Error checking IP before request")
        return AccessDecision.fail_open()
