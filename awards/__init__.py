"""
Flask application factory.

Creates and configures the app, registers all blueprints.
"""
from flask import Flask


def create_app():
    """Create and configure the Flask application."""
    from awards.logging_config import configure_logging
    from awards.config import SECRET_KEY, MAX_UPLOAD_BYTES

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY
    # Leave headroom over the CSV limit for the multipart envelope
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES + 1024 * 1024

    # ── Admin auth ──────────────────────────────────────────────────────
    from awards.routes.auth import require_admin
    app.before_request(require_admin)

    @app.errorhandler(413)
    def too_large(e):
        from flask import jsonify
        return jsonify({'error': 'File too large. Maximum size is 10MB'}), 413

    # Register blueprints
    from awards.routes.public import bp as public_bp
    from awards.routes.admin import bp as admin_bp
    from awards.routes.bulk_upload import bp as bulk_upload_bp
    from awards.routes.sync import bp as sync_bp

    app.register_blueprint(public_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(bulk_upload_bp)
    app.register_blueprint(sync_bp)

    # Circuit breakers for outbound CRM/email APIs
    from awards.extensions import redis_client
    from awards.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Models must be imported so relationships resolve. Schema is managed by
    # Alembic, no create_all() here.
    from awards.database import load_models
    load_models()

    return app
