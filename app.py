"""
DevSEO Content Platform - Flask Application

This is the main application file for the bilingual (English/Arabic) content
platform. It exposes the public, read-only blog API and the contact form:
- Locale-resolved blog listings, filtered by region and category
- Single post retrieval with view counting
- Title/content search and recent posts
- SEO metadata (meta tags, canonical URL, schema.org markup) per post
- Contact form submissions

Write operations (creating, publishing and retiring posts, taxonomy and
contact workflow) live in ``content_management`` and ``contact`` and are
shared through ``app.extensions['content_platform']``.
"""

import logging
from dataclasses import dataclass

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from config import LocaleConfig, get_config
from contact import SUCCESS_MESSAGE, ContactService
from content_management import ContentService, TaxonomyService
from content_query import ContentQueryComposer
from errors import ContentError, ValidationError
from models import db
from publication import PublicationPolicy
from repository import ContentRepository
from resources import collection_envelope
from search_seo import SchemaGenerator, SeoScorer
from translation import TranslationResolver

logger = logging.getLogger(__name__)

SERVICE_NAME = "devseo-content-platform"
SERVICE_VERSION = "1.0.0"


@dataclass
class PlatformServices:
    """Shared, request-independent collaborators built once per app."""
    locale_config: LocaleConfig
    resolver: TranslationResolver
    policy: PublicationPolicy
    repository: ContentRepository
    scorer: SeoScorer
    schema_generator: SchemaGenerator
    composer: ContentQueryComposer
    content: ContentService
    taxonomy: TaxonomyService
    contact: ContactService


def build_services(config, clock=None) -> PlatformServices:
    locale_config = LocaleConfig.from_mapping(config)
    resolver = TranslationResolver(locale_config)
    policy = PublicationPolicy(locale_config, clock=clock)
    repository = ContentRepository(policy)
    scorer = SeoScorer(resolver)
    schema_generator = SchemaGenerator(resolver, base_url=config.get("BASE_URL", "https://devseo.com"))
    composer = ContentQueryComposer(
        repository=repository,
        resolver=resolver,
        policy=policy,
        schema_generator=schema_generator,
        max_per_page=config.get("MAX_PER_PAGE", 100),
    )
    return PlatformServices(
        locale_config=locale_config,
        resolver=resolver,
        policy=policy,
        repository=repository,
        scorer=scorer,
        schema_generator=schema_generator,
        composer=composer,
        content=ContentService(
            repository=repository,
            resolver=resolver,
            policy=policy,
            scorer=scorer,
            schema_generator=schema_generator,
            base_url=config.get("BASE_URL", "https://devseo.com"),
        ),
        taxonomy=TaxonomyService(resolver),
        contact=ContactService(),
    )


def services() -> PlatformServices:
    return current_app.extensions["content_platform"]


def request_locale() -> str:
    """``?locale=`` first, then Accept-Language, then the default locale."""
    platform = services()
    locale = request.args.get("locale")
    if not locale:
        locale = request.accept_languages.best_match(platform.locale_config.supported_locales)
    return platform.resolver.normalize_locale(locale)


def request_region() -> str:
    platform = services()
    region = request.args.get("region") or platform.locale_config.global_region
    region = region.strip().upper()
    if not platform.policy.is_valid_region(region):
        raise ValidationError(errors={
            "region": [f"Invalid region. Allowed: {', '.join(platform.locale_config.regions)}."]
        })
    return region


def request_paging():
    per_page = request.args.get("per_page", current_app.config.get("DEFAULT_PER_PAGE", 10), type=int)
    page = request.args.get("page", 1, type=int)
    return page, per_page


api = Blueprint("api", __name__, url_prefix="/api")


@api.route("/health", methods=["GET"])
def health_check():
    """
    Health check endpoint for service monitoring.

    Returns:
        JSON response with service status and database connectivity information.
    """
    try:
        db.session.execute(db.text("SELECT 1"))
        return jsonify({
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "locales": list(services().locale_config.supported_locales),
        }), 200
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return jsonify({
            "status": "error",
            "service": SERVICE_NAME,
            "error": "Database connection failed"
        }), 500


# --- Blog Endpoints ---
@api.route("/blog", methods=["GET"])
def list_posts():
    """
    List live posts for a locale and region.

    Query Parameters:
        locale (str): en or ar (falls back to Accept-Language, then en).
        region (str): EG, US or GLOBAL. GLOBAL means no region restriction.
        per_page (int): Page size, capped at MAX_PER_PAGE.
        page (int): 1-based page number.
    """
    locale = request_locale()
    region = request_region()
    page, per_page = request_paging()

    result = services().composer.with_relations(["author", "categories", "tags", "regions"]) \
        .filter_published() \
        .ordered_by_recent() \
        .filter_region(region) \
        .paginate(page, per_page) \
        .results(locale)

    return jsonify(collection_envelope(
        result.items,
        locale=locale,
        region=region,
        total=result.total,
        per_page=result.per_page,
        page=result.page,
    )), 200


@api.route("/blog/category/<category_slug>", methods=["GET"])
def list_posts_by_category(category_slug):
    locale = request_locale()
    page, per_page = request_paging()

    result = services().composer.with_relations(["author", "categories", "tags", "regions"]) \
        .filter_published() \
        .ordered_by_recent() \
        .filter_category(category_slug) \
        .paginate(page, per_page) \
        .results(locale)

    return jsonify(collection_envelope(
        result.items,
        locale=locale,
        category=category_slug,
        total=result.total,
        per_page=result.per_page,
        page=result.page,
    )), 200


@api.route("/blog/search", methods=["GET"])
def search_posts():
    """
    Search live posts by title and content in the request locale.

    Query Parameters:
        q (str): At least 2 characters, otherwise 422.
    """
    locale = request_locale()
    page, per_page = request_paging()
    query = request.args.get("q", "")

    result = services().composer.with_relations(["author", "categories", "tags", "regions"]) \
        .filter_published() \
        .ordered_by_recent() \
        .search(query) \
        .paginate(page, per_page) \
        .results(locale)

    logger.info(f"Search for '{query.strip()}' returned {result.total} posts")
    return jsonify(collection_envelope(
        result.items,
        locale=locale,
        query=query.strip(),
        results=len(result.items),
        total=result.total,
    )), 200


@api.route("/blog/recent", methods=["GET"])
def recent_posts():
    locale = request_locale()
    limit = request.args.get("limit", 5, type=int)

    data = services().composer.recent(limit, locale)
    return jsonify(collection_envelope(data, locale=locale, limit=limit)), 200


@api.route("/blog/<slug>", methods=["GET"])
def get_post(slug):
    """
    Retrieve a live post by slug and count the view.

    Returns:
        JSON response with the resolved post, or 404 if it does not exist or
        is not live.
    """
    locale = request_locale()
    data = services().composer.fetch_for_display(slug, locale)
    return jsonify({"data": data}), 200


@api.route("/blog/<slug>/seo", methods=["GET"])
def get_post_seo(slug):
    return jsonify({"data": services().composer.seo_metadata(slug)}), 200


# --- Contact Endpoints ---
@api.route("/contact", methods=["POST"])
def submit_contact():
    """
    Store a contact form submission.

    Request Body:
        name (str), email (str), subject (str), message (str),
        region (str): EG, US or INTL. phone (str, optional).
    """
    data = request.get_json(silent=True) or {}
    locale = request.accept_languages.best_match(services().locale_config.supported_locales) \
        or services().locale_config.default_locale

    submission = services().contact.create_submission(
        data,
        ip_address=request.remote_addr,
        locale=locale,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({
        "message": SUCCESS_MESSAGE,
        "submission_id": submission.id,
    }), 201


# Error handlers
def content_error(error: ContentError):
    if error.status_code >= 500:
        db.session.rollback()
    logger.info(f"{request.method} {request.path} -> {error.status_code}: {error.message}")
    return jsonify(error.to_dict()), error.status_code


def not_found(error):
    return jsonify({"message": "Resource not found."}), 404


def bad_request(error):
    return jsonify({"message": "Bad request."}), 400


def internal_error(error):
    db.session.rollback()
    logger.error(f"Internal server error: {error}")
    return jsonify({"message": "Internal server error."}), 500


def create_app(config_object=None, clock=None) -> Flask:
    """
    Application factory.

    Args:
        config_object: Config class or object; defaults to ``get_config()``.
        clock: Optional zero-argument callable returning the current UTC
            time, used for publication checks.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    # Setup Logging
    logging.basicConfig(
        level=getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Setup CORS
    CORS(app, origins=app.config["CORS_ALLOWED_ORIGINS"])

    # Setup database
    db.init_app(app)

    app.extensions["content_platform"] = build_services(app.config, clock=clock)
    app.register_blueprint(api)

    app.register_error_handler(ContentError, content_error)
    app.register_error_handler(404, not_found)
    app.register_error_handler(400, bad_request)
    app.register_error_handler(500, internal_error)

    # Create tables when the application starts for the first time
    with app.app_context():
        db.create_all()

    logger.info(f"{SERVICE_NAME} started ({app.config.get('FLASK_ENV')})")
    return app


if __name__ == "__main__":
    config = get_config()
    app = create_app(config)
    app.run(host="0.0.0.0", port=config.PORT, debug=config.DEBUG)
