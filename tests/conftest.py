"""
Pytest configuration and fixtures for testing the localization service.
"""

import os
import sys
import pytest
from faker import Faker
from sqlalchemy.exc import OperationalError

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app, db
from app.models.translation import Translation
from app.services.localization import LocalizationService
from app.services.translation_cache import TranslationCacheLayer
from app.services.translation_store import TranslationStore

fake = Faker()


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def store_error():
    return OperationalError('SELECT', {}, Exception('store unavailable'))


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create a fresh database session for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions['localization'].cache.clear()
        yield db.session
        db.session.rollback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db_session):
    return TranslationStore()


@pytest.fixture
def cache(store, clock):
    return TranslationCacheLayer(store, ttl=1800, clock=clock)


@pytest.fixture
def service(store, cache):
    return LocalizationService(store, cache)


@pytest.fixture
def add_translation(db_session):
    """Insert a translation row directly, bypassing the service."""
    def _add(key=None, locale='en', value=None, category='general', plural_forms=None):
        translation = Translation(
            key=key or f'{fake.word()}.{fake.pystr(min_chars=6, max_chars=10)}',
            locale=locale,
            value=value or fake.sentence(nb_words=3),
            category=category,
            variables=[],
            plural_forms=plural_forms,
        )
        db.session.add(translation)
        db.session.commit()
        return translation
    return _add


class _BrokenQuery:
    """Stands in for Model.query and fails like an unreachable database."""

    def __get__(self, obj, cls):
        raise store_error()


@pytest.fixture
def broken_query(monkeypatch, db_session):
    """Make every Translation.query access fail."""
    monkeypatch.setattr(Translation, 'query', _BrokenQuery(), raising=False)
