"""
Tests for the HTTP endpoints and admin CLI
"""

from models.article_view import ArticleView
from models.audit_log import AuditLog
from models.fingerprint_ip_tracking import FingerprintIpTracking
from models.ip_blocking import IpBlocking
from security.ip_security import block_ip

IP = "203.0.113.20"
HEADERS = {"X-Forwarded-For": IP, "User-Agent": "pytest-browser"}


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_check_ip_security_allows_clear_ip(client):
    resp = client.get("/api/check-ip-security", headers=HEADERS)

    assert resp.status_code == 200
    assert resp.get_json() == {"allowed": True}


def test_check_ip_security_denies_blocked_ip(app, client):
    """Test a blocked IP gets 403 with its reason"""
    block_ip(IP, "Too many requests (31) per minute")

    resp = client.get("/api/check-ip-security", headers=HEADERS)

    assert resp.status_code == 403
    assert resp.get_json() == {"allowed": False, "reason": "Too many requests (31) per minute"}
    assert AuditLog.query.filter_by(action="IP_ACCESS_DENIED").count() == 1


def test_denial_audit_records_client_hop_of_forwarded_chain(app, client):
    """Test the audit row keeps only the client entry of a proxy chain"""
    block_ip("198.51.100.1", "manual")

    resp = client.get("/api/check-ip-security", headers={"X-Forwarded-For": "198.51.100.1, 10.0.0.1"})

    assert resp.status_code == 403
    entry = AuditLog.query.filter_by(action="IP_ACCESS_DENIED").one()
    assert entry.entity_id == "198.51.100.1"
    assert entry.ip == "198.51.100.1"


def test_check_ip_security_blocks_on_fan_out(app, client, add_tracking):
    add_tracking(IP, [f"fp-{i}" for i in range(11)], age=60)

    resp = client.get("/api/check-ip-security", headers=HEADERS)

    assert resp.status_code == 403
    assert "(11)" in resp.get_json()["reason"]
    assert IpBlocking.query.filter_by(ip_address=IP).one().is_blocked


def test_track_view(app, client):
    """Test posting a view records it along with the IP observation"""
    resp = client.post(
        "/api/article-views",
        json={"article_id": "article-1", "fingerprint": "fp-1", "saw_upsell": False},
        headers=HEADERS,
    )

    assert resp.status_code == 201
    assert resp.get_json() == {"tracked": True}
    view = ArticleView.query.one()
    assert view.ip_address == IP
    tracking = FingerprintIpTracking.query.one()
    assert tracking.user_agent == "pytest-browser"


def test_track_view_requires_fields(client):
    resp = client.post("/api/article-views", json={"article_id": "article-1"}, headers=HEADERS)

    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_track_view_rejected_for_blocked_ip(app, client):
    block_ip(IP, "manual")

    resp = client.post(
        "/api/article-views",
        json={"article_id": "article-1", "fingerprint": "fp-1"},
        headers=HEADERS,
    )

    assert resp.status_code == 403
    assert resp.get_json()["reason"] == "manual"
    assert ArticleView.query.count() == 0
    entry = AuditLog.query.filter_by(action="IP_ACCESS_DENIED").one()
    assert entry.ip == IP
    assert "/api/article-views" in entry.metadata_json


def test_rate_limit_blocks_after_burst(app, client):
    """Test the 31st tracked request within a minute is refused"""
    for i in range(30):
        resp = client.post(
            "/api/article-views",
            json={"article_id": f"article-{i}", "fingerprint": "fp-1"},
            headers=HEADERS,
        )
        assert resp.status_code == 201

    resp = client.post(
        "/api/article-views",
        json={"article_id": "article-30", "fingerprint": "fp-1"},
        headers=HEADERS,
    )

    assert resp.status_code == 403
    assert resp.get_json()["reason"] == "Too many requests (30) per minute"


def test_view_count_endpoint(client):
    for article_id in ("a1", "a2", "a1"):
        client.post("/api/article-views", json={"article_id": article_id, "fingerprint": "fp-1"}, headers=HEADERS)

    resp = client.get("/api/article-views/count", query_string={"fingerprint": "fp-1"})

    assert resp.status_code == 200
    assert resp.get_json() == {"count": 2, "articles": ["a1", "a2"], "max_free_articles": 5}


def test_view_count_reports_configured_limit(app, client):
    app.config["MAX_FREE_ARTICLES"] = 3

    resp = client.get("/api/article-views/count", query_string={"fingerprint": "fp-1"})

    assert resp.status_code == 200
    assert resp.get_json() == {"count": 0, "articles": [], "max_free_articles": 3}


def test_view_count_validation(client):
    assert client.get("/api/article-views/count").status_code == 400
    resp = client.get("/api/article-views/count", query_string={"fingerprint": "fp-1", "days": 0})
    assert resp.status_code == 400


def test_cli_block_and_unblock(app, cli_runner):
    result = cli_runner.invoke(args=["block-ip", IP, "--reason", "scraper"])
    assert result.exit_code == 0
    assert "blocked" in result.output
    assert IpBlocking.query.filter_by(ip_address=IP).one().block_reason == "scraper"

    result = cli_runner.invoke(args=["blocked-ips"])
    assert IP in result.output
    assert "scraper" in result.output

    result = cli_runner.invoke(args=["unblock-ip", IP])
    assert result.exit_code == 0
    assert "unblocked" in result.output

    result = cli_runner.invoke(args=["blocked-ips"])
    assert "No blocked IPs" in result.output
