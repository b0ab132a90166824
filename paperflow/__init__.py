import logging

from flask import Flask, jsonify
from paperflow.config import Config
from paperflow.extensions import db, migrate, object_store


def configure_logging(app):
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("paperflow").setLevel(app.config.get("LOG_LEVEL", "INFO"))


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    object_store.init_app(app)

    # Registers every model on the metadata
    from paperflow import models  # noqa

    from paperflow.routes.auth_routes import auth_bp
    from paperflow.routes.paper_routes import papers_bp
    from paperflow.routes.retrieval_routes import retrieval_bp
    from paperflow.routes.admin_routes import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(papers_bp, url_prefix="/papers")
    app.register_blueprint(retrieval_bp)
    app.register_blueprint(admin_bp, url_prefix="/admin")

    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({"error": "unauthenticated", "message": "Sign in first"}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "unauthorized", "message": "Not allowed for your role"}), 403

    return app
