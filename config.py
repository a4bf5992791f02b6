import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as articlegate.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "articlegate.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR = os.getenv("LOG_DIR")  # file logging only when set

    # IP abuse detection
    MAX_FINGERPRINTS_PER_IP = int(os.getenv("MAX_FINGERPRINTS_PER_IP", "10"))
    FINGERPRINT_WINDOW_HOURS = int(os.getenv("FINGERPRINT_WINDOW_HOURS", "24"))
    MAX_REQUESTS_PER_MINUTE = int(os.getenv("MAX_REQUESTS_PER_MINUTE", "30"))
    REQUEST_RATE_WINDOW_SECONDS = 60

    # Free article metering
    MAX_FREE_ARTICLES = int(os.getenv("MAX_FREE_ARTICLES", "5"))
    ARTICLE_VIEW_WINDOW_DAYS = int(os.getenv("ARTICLE_VIEW_WINDOW_DAYS", "30"))

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_DIR = None
    MAX_FREE_ARTICLES = 5
