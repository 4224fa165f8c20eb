import os
import logging
from flask import Flask, jsonify, redirect, url_for
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

from .config import DevConfig, ProdConfig, TestConfig

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

CONFIGS = {
    'development': DevConfig,
    'testing': TestConfig,
    'production': ProdConfig,
}


def create_app(config_name: str | None = None) -> Flask:
    """Application factory with environment based configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)

    # Pick configuration
    env = config_name or os.getenv('ENV') or os.getenv('FLASK_ENV') or 'production'
    app.config.from_object(CONFIGS.get(env, ProdConfig))

    # Initialise logging
    logging.basicConfig(level=logging.DEBUG if app.debug else logging.INFO)

    db.init_app(app)
    migrate.init_app(app, db)

    # Ensure models loaded so tables can be created
    from app import models  # noqa
    with app.app_context():
        db.create_all()

    from app.record_store import build_record_store
    app.extensions['record_store'] = build_record_store(app)

    @app.route('/')
    def index():
        return redirect(url_for('bookings.list_bookings'))

    @app.errorhandler(400)
    def bad_request(err):
        return jsonify(error=getattr(err, 'description', 'Bad request')), 400

    @app.errorhandler(404)
    def not_found(err):
        return jsonify(error=getattr(err, 'description', 'Not found')), 404

    @app.errorhandler(500)
    def server_error(_):
        return jsonify(error='Internal server error'), 500

    from app.errors import CommitBlocked, RecordNotFound, RecordStoreError, ValidationError

    @app.errorhandler(ValidationError)
    def validation_failed(err):
        return jsonify(error=str(err)), 400

    @app.errorhandler(RecordNotFound)
    def record_missing(err):
        return jsonify(error=str(err)), 404

    @app.errorhandler(CommitBlocked)
    def commit_blocked(err):
        return jsonify(error=str(err), state=err.state), 409

    @app.errorhandler(RecordStoreError)
    def store_failed(err):
        logging.exception("record store error: %s", err)
        return jsonify(error='Record store unavailable'), 502

    from app.bookings.routes import bp as bookings_bp
    from app.invoices.routes import bp as invoices_bp
    from app.inventory.routes import bp as inventory_bp
    from app.cli import workshop_cli

    app.register_blueprint(bookings_bp, url_prefix='/bookings')
    app.register_blueprint(invoices_bp, url_prefix='/invoices')
    app.register_blueprint(inventory_bp, url_prefix='/inventory')
    app.cli.add_command(workshop_cli)

    return app
