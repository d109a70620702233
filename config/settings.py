# config/settings.py
import os
from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
load_dotenv(os.path.join(BASE_DIR, ".env"))


def _as_bool(val, default=False):
    if val is None:
        return default
    return str(val).lower() in ("1", "true", "yes", "on")


def _as_list(val):
    if not val:
        return []
    return [item.strip() for item in str(val).split(",") if item.strip()]


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-secret-key")
    REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", "./logs")
    LOG_JSON = os.getenv("LOG_JSON", "1") == "1"
    LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", 5 * 1024 * 1024))
    LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", 5))
    APP_NAME = os.getenv("APP_NAME", "comments-service")

    # Posts service (remote existence check, fails open)
    POSTS_SERVICE_URL = os.getenv("POSTS_SERVICE_URL", "http://localhost:4000")
    POSTS_SERVICE_TIMEOUT = float(os.getenv("POSTS_SERVICE_TIMEOUT", 3))

    # ========= Comment limits =========
    MAX_COMMENT_LENGTH = int(os.getenv("MAX_COMMENT_LENGTH", 1000))
    MAX_AUTHOR_NAME_LENGTH = int(os.getenv("MAX_AUTHOR_NAME_LENGTH", 50))
    MAX_REPORT_DESCRIPTION_LENGTH = int(os.getenv("MAX_REPORT_DESCRIPTION_LENGTH", 500))
    MAX_COMMENT_DEPTH = int(os.getenv("MAX_COMMENT_DEPTH", 3))
    EDIT_WINDOW_HOURS = int(os.getenv("EDIT_WINDOW_HOURS", 24))
    BULK_MODERATION_LIMIT = int(os.getenv("BULK_MODERATION_LIMIT", 50))

    # ========= Scoring (single 0-100 scale) =========
    SPAM_SCORE_THRESHOLD = int(os.getenv("SPAM_SCORE_THRESHOLD", 15))
    SUSPICIOUS_SCORE_THRESHOLD = int(os.getenv("SUSPICIOUS_SCORE_THRESHOLD", 3))
    SIGNAL_TIME_BUDGET_MS = int(os.getenv("SIGNAL_TIME_BUDGET_MS", 50))
    PROFANITY_EXTRA_WORDS = _as_list(os.getenv("PROFANITY_EXTRA_WORDS"))

    # ========= Reports =========
    REPORT_FLAG_THRESHOLD = int(os.getenv("REPORT_FLAG_THRESHOLD", 3))
    REPORT_RATE_LIMIT = int(os.getenv("REPORT_RATE_LIMIT", 5))
    REPORT_RATE_WINDOW_SECONDS = int(os.getenv("REPORT_RATE_WINDOW_SECONDS", 600))
    COMMENT_RATE_LIMIT = int(os.getenv("COMMENT_RATE_LIMIT", 10))
    COMMENT_RATE_WINDOW_SECONDS = int(os.getenv("COMMENT_RATE_WINDOW_SECONDS", 300))

    # ========= Behaviour tracker =========
    MIN_SECONDS_BETWEEN_COMMENTS = int(os.getenv("MIN_SECONDS_BETWEEN_COMMENTS", 10))
    DUPLICATE_WINDOW_SECONDS = int(os.getenv("DUPLICATE_WINDOW_SECONDS", 300))
    BEHAVIOR_HISTORY_SIZE = int(os.getenv("BEHAVIOR_HISTORY_SIZE", 10))
    BEHAVIOR_IDLE_TTL_SECONDS = int(os.getenv("BEHAVIOR_IDLE_TTL_SECONDS", 3600))
    BEHAVIOR_SWEEP_INTERVAL_SECONDS = int(os.getenv("BEHAVIOR_SWEEP_INTERVAL_SECONDS", 300))
    BEHAVIOR_SHARDS = int(os.getenv("BEHAVIOR_SHARDS", 32))
    BEHAVIOR_SUSPICIOUS_VIOLATIONS = int(os.getenv("BEHAVIOR_SUSPICIOUS_VIOLATIONS", 3))
    BEHAVIOR_SWEEP_ENABLED = _as_bool(os.getenv("BEHAVIOR_SWEEP_ENABLED", "1"), True)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///comments-dev.db")


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URI", "sqlite:///:memory:")
    LOG_DIR = os.getenv("TEST_LOG_DIR", os.path.join(BASE_DIR, "logs", "test"))
    LOG_JSON = False
    # sweeps are driven explicitly in tests
    BEHAVIOR_SWEEP_ENABLED = False
    POSTS_SERVICE_URL = "http://posts.test"


config_map = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(config_name):
    return config_map.get(config_name, DevelopmentConfig)
