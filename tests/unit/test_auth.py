"""Unit tests for API key authentication"""
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from personalfit.api.auth import get_api_keys, verify_admin_api_key, verify_api_key


def _bearer(key: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=key)


@pytest.fixture
def api_keys(monkeypatch):
    monkeypatch.setenv("API_KEYS", "user_key_1, user_key_2")
    monkeypatch.setenv("ADMIN_API_KEYS", "admin_key_1")


class TestGetApiKeys:

    def test_parses_comma_separated(self, api_keys):
        assert get_api_keys("API_KEYS") == ["user_key_1", "user_key_2"]

    def test_missing_env_var(self, monkeypatch):
        monkeypatch.delenv("API_KEYS", raising=False)
        assert get_api_keys("API_KEYS") == []


class TestVerifyApiKey:

    @pytest.mark.asyncio
    async def test_valid_user_key(self, api_keys):
        assert await verify_api_key(_bearer("user_key_2")) == "user_key_2"

    @pytest.mark.asyncio
    async def test_admin_key_accepted(self, api_keys):
        assert await verify_api_key(_bearer("admin_key_1")) == "admin_key_1"

    @pytest.mark.asyncio
    async def test_invalid_key(self, api_keys):
        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(_bearer("nope"))
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_no_keys_configured(self, monkeypatch):
        monkeypatch.delenv("API_KEYS", raising=False)
        monkeypatch.delenv("ADMIN_API_KEYS", raising=False)

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(_bearer("anything"))
        assert exc_info.value.status_code == 503


class TestVerifyAdminApiKey:

    @pytest.mark.asyncio
    async def test_admin_key(self, api_keys):
        assert await verify_admin_api_key(_bearer("admin_key_1")) == "admin_key_1"

    @pytest.mark.asyncio
    async def test_user_key_forbidden(self, api_keys):
        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_api_key(_bearer("user_key_1"))
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_key(self, api_keys):
        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_api_key(_bearer("nope"))
        assert exc_info.value.status_code == 401
