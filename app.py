import os
import logging
from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix


def create_app(config_overrides=None):
    """Application factory pattern"""
    # Configure logging
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

    app = Flask(__name__)
    app.secret_key = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    # Keep column order of stored rows in responses
    app.json.sort_keys = False

    # Configure the database
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///spreadsheet_analyzer.db")
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    # Configure bearer tokens
    app.config["JWT_SECRET"] = os.environ.get("JWT_SECRET", app.secret_key)
    app.config["JWT_EXPIRES_HOURS"] = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))

    # Configure upload settings
    app.config['MAX_CONTENT_LENGTH'] = int(os.environ.get("MAX_UPLOAD_MB", "5")) * 1024 * 1024

    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    from models import db
    db.init_app(app)

    # Register routes and CLI commands
    from routes import register_routes
    from commands import register_commands
    register_routes(app)
    register_commands(app)

    @app.errorhandler(413)
    def file_too_large(error):
        limit_mb = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return jsonify({
            'status': 'error',
            'message': f'File too large. Maximum size is {limit_mb}MB'
        }), 413

    with app.app_context():
        # Create all database tables
        db.create_all()

    logging.info(f"Application created with database {app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0]}")
    return app
