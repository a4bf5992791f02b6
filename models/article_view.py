from datetime import datetime
from models.db import db

class ArticleView(db.Model):
    __tablename__ = "article_views"

    id = db.Column(db.Integer, primary_key=True)
    fingerprint = db.Column(db.String(128), nullable=False, index=True)
    article_id = db.Column(db.String(64), nullable=False, index=True)

    # Whether the viewer was already over the free limit when the view was recorded
    saw_upsell = db.Column(db.Boolean, default=False, nullable=False)
    ip_address = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
