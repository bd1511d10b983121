import pytest

from backend import create_app
from totp_core import encode

# RFC 6238 appendix B secret for SHA-1
RFC_SECRET = encode(b"12345678901234567890")


@pytest.fixture()
def rfc_secret():
    return RFC_SECRET


@pytest.fixture()
def app():
    app = create_app({"TESTING": True, "DASHOTP_ISSUER": "TestDashboard"})
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
