import os


def _flag(name, default=""):
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku, Supabase)
    # use "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or "sqlite:///database.sqlite"

    # --- Persistence back-end ---
    # One of: sqlite | mysql | postgres (alias: supabase).
    # Chosen once at startup; must match the dialect of DATABASE_URL.
    DATABASE_BACKEND = os.environ.get("DATABASE_BACKEND", "sqlite")

    # --- Hosting ---
    SITES_ROOT = os.environ.get("SITES_ROOT", "uploads")
    # lvh.me resolves every sub-domain to 127.0.0.1, handy for local dev.
    APP_DOMAIN = os.environ.get("APP_DOMAIN", "lvh.me")
    ENABLE_SUBDOMAINS = _flag("ENABLE_SUBDOMAINS", "true")
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 50 * 1024 * 1024))

    # --- API tokens ---
    API_TOKEN_MAX_AGE = int(os.environ.get("API_TOKEN_MAX_AGE", 24 * 3600))

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    RATELIMIT_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SECRET_KEY = Config.SECRET_KEY or "dev-secret-key-not-for-production"


class ProdConfig(Config):
    """Production."""

    DEBUG = False


class TestConfig(Config):
    """Testing — in-memory SQLite, rate limiting off."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    DATABASE_BACKEND = "sqlite"
    APP_DOMAIN = "lvh.me"
    ENABLE_SUBDOMAINS = True
    RATELIMIT_ENABLED = False  # disable rate limiting in tests


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
