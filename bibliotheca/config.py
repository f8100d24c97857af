import os


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "devsecret")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    SQLALCHEMY_DATABASE_URI = os.getenv("SQLALCHEMY_DATABASE_URI", "sqlite:///bibliotheca.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    AUTO_CREATE_TABLES = _env_flag("AUTO_CREATE_TABLES", "1")

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-devsecret")

    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "bibliotheca_session")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")
    PERMANENT_SESSION_LIFETIME = 60 * 60 * 24 * 7  # 1 week

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Lending
    DEFAULT_BORROW_WEEKS = int(os.getenv("DEFAULT_BORROW_WEEKS", "3"))
    DEFAULT_RENEW_WEEKS = int(os.getenv("DEFAULT_RENEW_WEEKS", "2"))
    DEFAULT_MAX_RENEWALS = int(os.getenv("DEFAULT_MAX_RENEWALS", "2"))
    MAX_LOAN_WEEKS = int(os.getenv("MAX_LOAN_WEEKS", "52"))

    # Admin
    ADMIN_PAGE_LIMIT = int(os.getenv("ADMIN_PAGE_LIMIT", "20"))
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")


class TestConfig(Config):
    TESTING = True
    ENVIRONMENT = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    AUTO_CREATE_TABLES = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    ADMIN_EMAIL = ""
    ADMIN_PASSWORD = ""
