from flask import Blueprint, current_app, jsonify, request

from security.guard import ip_protected
from security.ip_security import get_client_ip, get_user_agent
from utils.article_analytics import get_article_view_count, track_article_view

article_views_bp = Blueprint("article_views", __name__, url_prefix="/api/article-views")


@article_views_bp.get("/count")
def view_count():
    fingerprint = (request.args.get("fingerprint") or "").strip()
    if not fingerprint:
        return jsonify(error="fingerprint is required"), 400

    days = request.args.get("days", type=int)
    if days is not None and days <= 0:
        return jsonify(error="days must be positive"), 400

    result = get_article_view_count(fingerprint, days)
    result.max_free_articles = current_app.config.get("MAX_FREE_ARTICLES", 5)
    return jsonify(result.to_dict()), 200


@article_views_bp.post("")
@ip_protected
def create_view():
    data = request.get_json(silent=True) or {}
    article_id = str(data.get("article_id") or "").strip()
    fingerprint = str(data.get("fingerprint") or "").strip()
    saw_upsell = bool(data.get("saw_upsell", False))

    if not article_id or not fingerprint:
        return jsonify(error="article_id and fingerprint are required"), 400

    tracked = track_article_view(
        article_id,
        fingerprint,
        saw_upsell=saw_upsell,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return jsonify(tracked=tracked), 201
