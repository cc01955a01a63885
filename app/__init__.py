from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
import logging
import os
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def create_app(config_name='development'):
    app = Flask(__name__)

    # Config
    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    else:
        app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv(
            'DATABASE_URL',
            'sqlite:///translations.db'
        )

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['TRANSLATION_CACHE_TTL'] = int(os.getenv('TRANSLATION_CACHE_TTL', 1800))
    app.config['STORE_BATCH_GET_LIMIT'] = int(os.getenv('STORE_BATCH_GET_LIMIT', 100))
    app.config['STORE_BATCH_WRITE_LIMIT'] = int(os.getenv('STORE_BATCH_WRITE_LIMIT', 25))

    # Initialize extensions
    db.init_app(app)

    # Create tables with error handling
    with app.app_context():
        from app import models  # noqa: F401 - registers tables on db.metadata
        try:
            db.create_all()
        except Exception as e:
            logger.warning(f"Could not create database tables: {e}")

    # One store, one cache, one service per app
    from app.services.localization import LocalizationService
    from app.services.translation_cache import TranslationCacheLayer
    from app.services.translation_store import TranslationStore

    store = TranslationStore(
        batch_get_limit=app.config['STORE_BATCH_GET_LIMIT'],
        batch_write_limit=app.config['STORE_BATCH_WRITE_LIMIT'],
    )
    cache = TranslationCacheLayer(store, ttl=app.config['TRANSLATION_CACHE_TTL'])
    app.extensions['localization'] = LocalizationService(store, cache)

    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    return app


def get_localization_service():
    """Return the localization service bound to the current app."""
    return current_app.extensions['localization']
