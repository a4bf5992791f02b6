from datetime import datetime
from models.db import db

class IpBlocking(db.Model):
    __tablename__ = "ip_blocking"

    id = db.Column(db.Integer, primary_key=True)
    ip_address = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # Once blocked the record short-circuits every check until an admin unblocks it
    is_blocked = db.Column(db.Boolean, default=False, nullable=False)
    block_reason = db.Column(db.String(255), nullable=True)
    blocked_at = db.Column(db.DateTime, nullable=True)

    # Cached all-time count of distinct fingerprints seen from this IP
    fingerprint_count = db.Column(db.Integer, default=0, nullable=False)

    last_seen = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
