from datetime import datetime
from models.db import db

class FingerprintIpTracking(db.Model):
    """Append-only log of (fingerprint, ip, user agent) observations."""
    __tablename__ = "fingerprint_ip_tracking"

    id = db.Column(db.Integer, primary_key=True)
    fingerprint_id = db.Column(db.String(128), nullable=False, index=True)
    ip_address = db.Column(db.String(64), nullable=False, index=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
