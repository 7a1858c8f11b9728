import os
import tempfile

# Must be set before the app (and its settings) is imported
os.environ["APP_ENV"] = "test"
# File-backed so request sessions and the audit writer get their own connections
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(), "test.db")
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["LOG_FILE"] = ""
os.environ["USE_ARQ_WORKER"] = "false"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["SHOPIFY_API_SECRET"] = "test-shopify-secret"
os.environ["ENCRYPTION_SALT"] = "test-encryption-salt"
os.environ["SCRYPT_N"] = "1024"
os.environ["ADMIN_API_ENABLED"] = "true"
os.environ["ADMIN_KEY"] = "test-admin-key"

import pytest
from fastapi.testclient import TestClient

from app.main import app
from helpers import install_store


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def reset_rate_limits(client):
    client.app.state.rate_limiter.store.clear()
    yield


@pytest.fixture
def store_a(client):
    return install_store(client, "alpha-shop.myshopify.com", "Alpha")


@pytest.fixture
def store_b(client):
    return install_store(client, "beta-shop.myshopify.com", "Beta")
