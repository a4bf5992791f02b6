from .health import health_bp
from .security import security_bp
from .article_views import article_views_bp
