from datetime import datetime, timezone

from flask import Flask, jsonify

from bibliotheca.config import Config
from bibliotheca.extensions import db, migrate, jwt


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # 1) db init, models imported so their tables are registered
    db.init_app(app)
    from bibliotheca.models import book, user  # noqa: F401

    # 2) other extensions
    migrate.init_app(app, db)
    jwt.init_app(app)

    # 3) blueprints
    from bibliotheca.controllers.auth_controller import auth_bp
    from bibliotheca.controllers.book_controller import book_bp
    from bibliotheca.controllers.admin_controller import admin_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(book_bp)
    app.register_blueprint(admin_bp)

    @app.get("/api/health")
    def health():
        return jsonify({
            "success": True,
            "message": "Bibliotheca API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": app.config.get("ENVIRONMENT", "development"),
        })

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()
            _ensure_admin(app)

    app.logger.info("Bibliotheca ready (%s)", app.config.get("ENVIRONMENT"))
    return app


def _ensure_admin(app):
    email = app.config.get("ADMIN_EMAIL")
    password = app.config.get("ADMIN_PASSWORD")
    if not email or not password:
        return

    from bibliotheca.services.auth_service import AuthService
    AuthService.ensure_admin(email, password)
    app.logger.info("Admin account ready: %s", email)
