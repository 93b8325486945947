from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from dispatch_sla import create_app, db
from dispatch_sla.config import Config

JWT_SECRET = "test-jwt-secret-for-dispatch-sla-0123456789"
CRON_SECRET = "cron-test-secret"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SUPABASE_JWT_SECRET = JWT_SECRET
    JWT_AUDIENCE = "authenticated"
    CRON_SECRET = CRON_SECRET
    LOG_LEVEL = "WARNING"


def make_token(sub: str = "user-1", expires_in: int = 3600, audience: str = "authenticated") -> str:
    payload = {
        "sub": sub,
        "email": f"{sub}@example.com",
        "role": "authenticated",
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def cron_headers() -> dict:
    return {"Authorization": f"Bearer {CRON_SECRET}"}
