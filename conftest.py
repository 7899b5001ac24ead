import pytest

@pytest.fixture(autouse=True)
def _test_transport_settings(settings):
    # Session cookies must round-trip over the plain-http test client
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.SECURE_HSTS_SECONDS = 0

    # Never reach a real backend from tests
    settings.CRM_BACKEND_URL = "http://crm-backend.invalid/api"
    settings.CRM_SERVICE_TOKEN = ""
