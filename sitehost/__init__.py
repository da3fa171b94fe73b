import os
import logging

import click
from flask import Flask, g, jsonify
from werkzeug.security import generate_password_hash

from sitehost.config import config_by_name
from sitehost.extensions import db, login_manager, limiter


def create_app(config_name=None, overrides=None):
    """Application factory.

    Builds the process-wide service graph once and parks it on
    app.extensions:

        persistence      PersistenceAdapter (one per process)
        tenant_registry  TenantRegistry
        site_storage     StorageLayout
        site_resolver    SiteResolver
        deploy_service   DeployService
    """

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if overrides:
        app.config.update(overrides)

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)

    # --- Import models so the metadata knows every table ---
    with app.app_context():
        from sitehost import models  # noqa: F401

    # --- Hosting services ---
    init_services(app)

    # --- Tenant middleware (sub-domain serving) ---
    from sitehost.middleware.tenant import init_tenant_middleware
    init_tenant_middleware(app)

    # --- Register blueprints ---
    from sitehost.blueprints.serving import serving_bp
    from sitehost.blueprints.sites_api import sites_api_bp

    app.register_blueprint(serving_bp)
    app.register_blueprint(sites_api_bp)

    # --- Root route ---
    @app.route("/")
    def index():
        return jsonify(ok=True, service="sitehost")

    @app.route("/uploads/<path:filepath>")
    def serve_upload(filepath):
        """Serve stored files straight from SITES_ROOT, no site lookup."""
        from flask import abort, send_file
        from sitehost.errors import StorageError

        site_id, _, relative_path = filepath.partition("/")
        storage = app.extensions["site_storage"]
        try:
            full_path = storage.path_for(site_id, relative_path)
        except StorageError:
            abort(404)
        if os.path.isdir(full_path):
            full_path = os.path.join(full_path, "index.html")
        if not os.path.isfile(full_path):
            abort(404)
        g.serving_site_id = site_id
        return send_file(full_path, conditional=True)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Hosted sites bring their own scripts, styles and framing needs;
        # the lock-down below only applies to our own pages and API.
        if g.get("serving_site_id") is None:
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "base-uri 'self'; "
                "frame-ancestors 'none';"
            )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def init_services(app):
    """Construct the persistence adapter and the services built on it.

    The adapter wraps the Flask-SQLAlchemy engine (and its pool) and is
    created exactly once per app; the back-end is fixed here and never
    re-chosen at call time. The schema is migrated before any request is
    served; a failing migration stops startup.
    """
    from sitehost.persistence import create_adapter
    from sitehost.services.deploy_service import DeployService
    from sitehost.services.registry import TenantRegistry
    from sitehost.services.resolver import SiteResolver
    from sitehost.services.storage_layout import StorageLayout

    with app.app_context():
        adapter = create_adapter(app.config["DATABASE_BACKEND"], db.engine)
        adapter.migrate()

    registry = TenantRegistry(adapter)
    storage = StorageLayout(app.config["SITES_ROOT"])
    resolver = SiteResolver(
        registry,
        storage,
        base_domain=app.config["APP_DOMAIN"],
        enable_subdomains=app.config["ENABLE_SUBDOMAINS"],
    )

    os.makedirs(storage.content_root, exist_ok=True)

    app.extensions["persistence"] = adapter
    app.extensions["tenant_registry"] = registry
    app.extensions["site_storage"] = storage
    app.extensions["site_resolver"] = resolver
    app.extensions["deploy_service"] = DeployService(registry, storage)


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("init-db")
    def init_db():
        """Create the schema and apply pending additive migrations.

        Safe to re-run; columns that already exist are left alone.
        """
        adapter = app.extensions["persistence"]
        adapter.migrate()
        click.echo(f"Schema is up to date ({adapter.backend}).")

    @app.cli.command("create-user")
    @click.option("--email", required=True, help="User email")
    @click.option("--name", default="Site Owner", help="Display name")
    @click.option("--password", required=True, help="Password")
    def create_user(email, name, password):
        """Create a site owner and print an API token for them.

        Usage:
            flask create-user --email me@example.com --password s3cret
        """
        from sitehost.models.user import User
        from sitehost.services.token_service import issue_token

        email = email.lower().strip()
        user = User.query.filter_by(email=email).first()
        if user:
            click.echo(f"User already exists: {email}")
        else:
            user = User(
                email=email,
                name=name,
                password_hash=generate_password_hash(password),
            )
            db.session.add(user)
            db.session.commit()
            click.echo(f"Created user: {email}")

        click.echo("")
        click.echo("=" * 60)
        click.echo(f"  User id:   {user.id}")
        click.echo(f"  API token: {issue_token(user.id)}")
        click.echo("=" * 60)

    @app.cli.command("recount-sites")
    def recount_sites():
        """Recompute size/count for every site from its file rows."""
        registry = app.extensions["tenant_registry"]
        site_ids = registry.list_site_ids()
        for site_id in site_ids:
            file_count, total_size = registry.refresh_counters(site_id)
            click.echo(f"  {site_id}: {file_count} file(s), {total_size} bytes")
        click.echo(f"Recounted {len(site_ids)} site(s).")
