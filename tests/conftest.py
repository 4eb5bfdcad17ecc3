import json
import time
from urllib.parse import urlsplit

import pytest

from travelplace import create_app, db


class FakeVerifier:
    """Stands in for the booking backend's verify-payment call."""

    def __init__(self):
        self.calls = []
        self.result = {"status": "success"}
        self.error = None

    def __call__(self, service, reference):
        self.calls.append((service, reference))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def app(verifier):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "PAYMENT_VERIFIER": verifier,
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def location(response):
    parts = urlsplit(response.headers["Location"])
    return f"{parts.path}?{parts.query}" if parts.query else parts.path


def booking_record(data, age_hours=0.0, service="hotel"):
    stamp = int(time.time() * 1000) - int(age_hours * 60 * 60 * 1000)
    return json.dumps({"timestamp": stamp, "serviceType": service, "data": data})
