from .db import db
from .audit_log import AuditLog
from .ip_blocking import IpBlocking
from .fingerprint_ip_tracking import FingerprintIpTracking
from .article_view import ArticleView
