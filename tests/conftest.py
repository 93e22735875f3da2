import pytest
from fastapi.testclient import TestClient

from imagery.config.settings import Settings
from imagery.main import create_app
from tests.test_data import TEST_SECRET, FakeImageProvider, FakeStripeGateway


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY=TEST_SECRET,
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET="whsec_test_123",
        GEMINI_API_KEY="test-gemini-key",
        FRONTEND_URL="https://app.example.com",
    )


@pytest.fixture
def provider():
    return FakeImageProvider()


@pytest.fixture
def gateway():
    return FakeStripeGateway()


@pytest.fixture
def app(settings, provider, gateway):
    return create_app(settings, image_provider=provider, payment_gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
