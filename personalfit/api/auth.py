"""API authentication using API keys"""
import os
import logging
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_api_keys(env_var: str = "API_KEYS") -> list[str]:
    """Load API keys from environment variable"""
    api_keys_str = os.getenv(env_var, "")
    if not api_keys_str:
        logger.warning(f"No {env_var} configured in environment")
        return []
    return [key.strip() for key in api_keys_str.split(",") if key.strip()]


def _check_key(api_key: str, valid_keys: list[str]) -> str:
    if not valid_keys:
        logger.error("No API keys configured - rejecting all requests")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if api_key not in valid_keys:
        logger.warning(f"Invalid API key attempt: {api_key[:10]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    logger.debug(f"API key validated: {api_key[:10]}...")
    return api_key


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Verify API key from Authorization header

    Admin keys are accepted too.

    Raises:
        HTTPException: If API key is invalid
    """
    return _check_key(
        credentials.credentials,
        get_api_keys("API_KEYS") + get_api_keys("ADMIN_API_KEYS")
    )


async def verify_admin_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Verify an admin API key (missed-workout sweep, monthly freeze grant)

    Raises:
        HTTPException: 401 for unknown keys, 403 for regular keys
    """
    api_key = credentials.credentials
    if api_key in get_api_keys("API_KEYS") and api_key not in get_api_keys("ADMIN_API_KEYS"):
        logger.warning(f"Non-admin key used on admin route: {api_key[:10]}...")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin API key required"
        )
    return _check_key(api_key, get_api_keys("ADMIN_API_KEYS"))
