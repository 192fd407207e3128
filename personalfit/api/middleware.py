"""API middleware for rate limiting, CORS and request metrics"""
import logging
import time
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware

from personalfit.config import CORS_ORIGINS
from personalfit.monitoring import record_request

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


def setup_cors(app):
    """Configure CORS middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(f"CORS configured for origins: {CORS_ORIGINS}")


def setup_rate_limiting(app):
    """Configure rate limiting"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info("Rate limiting configured")


def setup_request_metrics(app):
    """Count and time every request by method and path"""

    @app.middleware("http")
    async def request_metrics(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        # Route template keeps user IDs out of the label values
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        record_request(request.method, endpoint, response.status_code, time.time() - start_time)
        return response
