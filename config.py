"""
Application configuration.

Environment-based config classes following the 12-factor app methodology.
Sensitive values are read exclusively from environment variables.
"""

import os


class Config:
    """Base configuration shared by all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")

    # MongoDB
    MONGODB_URI = os.environ.get(
        "MONGODB_URI", "mongodb://localhost:27017/facturahn"
    )
    MONGO_CLIENT_CLASS = None
    ENSURE_INDEXES = True

    # Bootstrap admin account (created on first start)
    SEED_ADMIN = True
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@facturahn.local")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")

    # API tokens
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 86400))

    # Fiscal settings
    CAI_WARNING_DAYS = int(os.environ.get("CAI_WARNING_DAYS", 30))
    # Business clock: invoice dates and CAI expiry
    TIMEZONE = os.environ.get("TIMEZONE", "America/Tegucigalpa")

    # Invoice listing
    INVOICES_PER_PAGE = 25
    MAX_INVOICES_PER_PAGE = 100

    # Reports
    REPORT_DEFAULT_LIMIT = 10
    REPORT_MAX_LIMIT = 100
    LOW_STOCK_THRESHOLD = float(os.environ.get("LOW_STOCK_THRESHOLD", 5))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Local development — debug on."""

    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(Config):
    """Production — expects MONGODB_URI and SECRET_KEY in env."""

    DEBUG = False


class TestingConfig(Config):
    """Automated tests — separate test database, no bootstrap data."""

    TESTING = True
    MONGODB_URI = os.environ.get(
        "MONGODB_URI", "mongodb://localhost:27017/facturahn_test"
    )
    SEED_ADMIN = False
    TIMEZONE = "UTC"
    LOG_LEVEL = "WARNING"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
