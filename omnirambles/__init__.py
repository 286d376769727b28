import os
from flask import Flask
from dotenv import load_dotenv

from .config import DevConfig, ProdConfig, TestConfig
from .extensions import db, migrate, cors, limiter
from .common.errors import register_error_handlers
from .common.logging import setup_json_logging, register_request_logging
from .common.security import register_security_headers

CONFIGS = {
    "test": TestConfig,
    "testing": TestConfig,
    "production": ProdConfig,
}


def _csv(value, default):
    """'a,b' -> ['a', 'b']; une valeur sans virgule passe telle quelle."""
    if not value:
        return default
    if isinstance(value, str) and "," in value:
        return [x.strip() for x in value.split(",") if x.strip()] or default
    return value


def _init_cors(app):
    origins = _csv(app.config.get("CORS_ORIGINS"), "*")
    cors.init_app(app, resources={
        r"/api/*": {
            "origins": origins,
            "allow_headers": _csv(app.config.get("CORS_ALLOW_HEADERS"), ["Authorization", "Content-Type"]),
            "expose_headers": _csv(app.config.get("CORS_EXPOSE_HEADERS"), ["Content-Type"]),
            # cookie de session cross-origin: seulement avec une whitelist explicite
            "supports_credentials": origins != "*",
        }
    })


def create_app():
    # Charge .env si présent (dev)
    load_dotenv()

    env = os.getenv("APP_ENV") or os.getenv("FLASK_ENV", "development")
    app = Flask(__name__)
    app.config.from_object(CONFIGS.get(env, DevConfig))
    app.config["APP_ENV"] = env

    db.init_app(app)
    migrate.init_app(app, db)
    _init_cors(app)
    limiter.init_app(app)   # Limiter lit RATELIMIT_* depuis app.config

    setup_json_logging(app)
    register_request_logging(app)
    register_error_handlers(app)
    register_security_headers(app)

    # Importer les modèles pour que Flask-Migrate/Alembic voie les tables
    from .users import models as users_models  # noqa: F401
    from .auth import models as auth_models    # noqa: F401
    from .tags import models as tags_models    # noqa: F401
    from .notes import models as notes_models  # noqa: F401

    # Store de sessions en mémoire (dev mono-process / tests)
    if app.config["SESSION_STORE"] == "memory":
        from .auth.sessions import MemorySessionStore
        from .common.deps import MEMORY_STORE_KEY
        app.extensions[MEMORY_STORE_KEY] = MemorySessionStore()

    # --- Blueprints ---
    from .auth.routes import bp as auth_bp
    from .users.routes import bp as users_bp
    from .notes.routes import bp as notes_bp
    from .tags.routes import bp as tags_bp
    from .docs.routes import bp as docs_bp
    from .health.routes import bp as health_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")
    app.register_blueprint(notes_bp, url_prefix="/api/v1/notes")
    app.register_blueprint(tags_bp, url_prefix="/api/v1/tags")
    app.register_blueprint(docs_bp)
    app.register_blueprint(health_bp)

    # Même quota pour tout le contenu utilisateur
    content_limit = app.config.get("RATELIMIT_NOTES", "60/minute")
    limiter.limit(content_limit)(notes_bp)
    limiter.limit(content_limit)(tags_bp)

    from .auth.cli import register_cli
    register_cli(app)

    return app
