"""
Pytest configuration and fixtures for the article gate tests
"""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.fingerprint_ip_tracking import FingerprintIpTracking


@pytest.fixture(scope="function")
def app():
    """
    Application bound to a fresh in-memory database
    """
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture
def add_tracking(app):
    """
    Insert fingerprint/IP observations, ``age`` seconds in the past
    """
    def _add(ip_address, fingerprints, age=0):
        created_at = datetime.utcnow() - timedelta(seconds=age)
        for fp in fingerprints:
            db.session.add(FingerprintIpTracking(
                fingerprint_id=fp,
                ip_address=ip_address,
                user_agent="pytest",
                created_at=created_at,
            ))
        db.session.commit()
    return _add
