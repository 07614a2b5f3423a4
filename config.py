import os
from dataclasses import dataclass
from typing import Tuple


def _split_env(name, default):
    return tuple(value.strip() for value in os.environ.get(name, default).split(",") if value.strip())


class Config:
    PORT = int(os.environ.get("PORT", 8010))
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("DEBUG", "True").lower() == "true"
    SECRET_KEY = os.environ.get("SECRET_KEY", "super-secret-content-key")

    # SQLite Database Configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///content.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS settings
    CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "*").split(",")

    # Public site used for canonical and author URLs in structured data
    BASE_URL = os.environ.get("BASE_URL", "https://devseo.com")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Locale and region tables
    SUPPORTED_LOCALES = _split_env("SUPPORTED_LOCALES", "en,ar")
    DEFAULT_LOCALE = os.environ.get("DEFAULT_LOCALE", "en")
    FALLBACK_LOCALE = "en"
    CONTENT_REGIONS = _split_env("CONTENT_REGIONS", "EG,US,GLOBAL")
    GLOBAL_REGION = "GLOBAL"

    # Pagination
    DEFAULT_PER_PAGE = int(os.environ.get("DEFAULT_PER_PAGE", 10))
    MAX_PER_PAGE = int(os.environ.get("MAX_PER_PAGE", 100))


class DevelopmentConfig(Config):
    DEBUG = True
    FLASK_ENV = "development"
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///content.db")


class ProductionConfig(Config):
    DEBUG = False
    FLASK_ENV = "production"
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///data/content.db")


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    FLASK_ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BASE_URL = "https://devseo.com"
    LOG_LEVEL = "WARNING"


def get_config():
    env = os.environ.get("FLASK_ENV")
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig


@dataclass(frozen=True)
class LocaleConfig:
    """
    Immutable locale and region table.

    Injected into TranslationResolver and PublicationPolicy instead of being
    read from module globals, so tests and requests can carry their own copy.
    """
    supported_locales: Tuple[str, ...] = ("en", "ar")
    default_locale: str = "en"
    fallback_locale: str = "en"
    regions: Tuple[str, ...] = ("EG", "US", "GLOBAL")
    global_region: str = "GLOBAL"

    @classmethod
    def from_mapping(cls, config):
        """Build from a Flask config (or any mapping with the same keys)."""
        return cls(
            supported_locales=tuple(config.get("SUPPORTED_LOCALES", cls.supported_locales)),
            default_locale=config.get("DEFAULT_LOCALE", cls.default_locale),
            fallback_locale=config.get("FALLBACK_LOCALE", cls.fallback_locale),
            regions=tuple(config.get("CONTENT_REGIONS", cls.regions)),
            global_region=config.get("GLOBAL_REGION", cls.global_region),
        )
