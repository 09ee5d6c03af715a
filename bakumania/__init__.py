import os
import logging
from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

from .config import DevConfig, ProdConfig, TestConfig

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

CONFIGS = {
    'development': DevConfig,
    'production': ProdConfig,
    'testing': TestConfig,
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
    from bakumania import models  # noqa
    with app.app_context():
        db.create_all()

    @app.route('/')
    def index():
        return jsonify(service='bakumania', catalog='/api/bakugan')

    @app.errorhandler(404)
    def not_found(_):
        return jsonify(error='Not found', path=request.path), 404

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify(error='Method not allowed'), 405

    @app.errorhandler(500)
    def server_error(_):
        return jsonify(error='Internal server error'), 500

    from bakumania.catalog.routes import bp as catalog_bp
    from bakumania.price_history.routes import bp as price_history_bp
    from bakumania.cli import catalog_cli

    app.register_blueprint(catalog_bp, url_prefix='/api/bakugan')
    app.register_blueprint(price_history_bp, url_prefix='/api/price-history')
    app.cli.add_command(catalog_cli)

    return app
