import logging
from typing import Optional

import requests

from client.fingerprint import DEFAULT_TIMEOUT_SECONDS, check_ip_before_request
from security.access import AccessDecision, ViewCount, DEFAULT_BLOCK_REASON

logger = logging.getLogger(__name__)


class AccessBlockedError(Exception):
    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or DEFAULT_BLOCK_REASON
        super().__init__(self.reason)


class GateAPI:
    """HTTP client for the article gate endpoints."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def check_ip(self) -> AccessDecision:
        return check_ip_before_request(self.base_url, session=self.session, timeout=self.timeout)

    def get_view_count(self, fingerprint: str, days: int = 30) -> ViewCount:
        try:
            response = self.session.get(
                f"{self.base_url}/api/article-views/count",
                params={"fingerprint": fingerprint, "days": days},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError):
            logger.exception("Error fetching article view count")
            return ViewCount()

        limit = data.get("max_free_articles")
        return ViewCount(
            count=int(data.get("count", 0)),
            articles=list(data.get("articles", [])),
            max_free_articles=int(limit) if limit is not None else None,
        )

    def track_view(self, article_id: str, fingerprint: str, saw_upsell: bool = False) -> bool:
        """
        Raises AccessBlockedError on 403. Any other failure is logged and
        reported as False.
        """
        try:
            response = self.session.post(
                f"{self.base_url}/api/article-views",
                json={"article_id": article_id, "fingerprint": fingerprint, "saw_upsell": saw_upsell},
                timeout=self.timeout,
            )
        except requests.RequestException:
            logger.exception("Error tracking article view")
            return False

        if response.status_code == 403:
            try:
                body = response.json()
            except ValueError:
                body = None
            raise AccessBlockedError(body.get("reason") if isinstance(body, dict) else None)

        if not response.ok:
            logger.warning("Tracking article view returned %s", response.status_code)
            return False
        return True

    def close(self):
        self.session.close()
