"""
@file: middleware.py
@description:
This module configures and centralizes middleware for the FastAPI application.
It includes CORS policy configuration and rate limiting to prevent API abuse.

The middleware components include:
- CORS configuration: Controls which domains can access the API
- Rate limiting: Limits each client to a fixed number of requests per window
- Request logging: Logs information about each request and its processing time
- HTTPS redirect: Ensures secure connections in production

@dependencies:
- fastapi: For CORSMiddleware
- fastapi_limiter: For rate limiting
- redis: As a backend for rate limiting
- sports_predictions.core.config: For application settings
- sports_predictions.core.logger: For structured logging

@notes:
- Rate limiting is applied to every /api route through the `rate_limit`
  dependency. When Redis cannot be reached at startup (or rate limiting is
  disabled) the dependency lets every request through.
- Exceeding the limit raises RateLimitedError, rendered as a 429 JSON body.
"""

import math
import time
from typing import Callable

import redis.asyncio as redis
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from redis.exceptions import NoScriptError, RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from sports_predictions.core.config import Settings
from sports_predictions.core.errors import RateLimitedError
from sports_predictions.core.logger import setup_logger, log_request_details

# Create a component-specific logger
logger = setup_logger("sports_predictions.core.middleware")


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """
    Configure CORS middleware from the comma-separated CORS_ORIGIN setting.
    """
    origins = settings.cors_origins or ["*"]
    logger.info(f"Setting up CORS middleware with origins: {origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,  # 24 hours cache for preflight requests
    )


def client_identifier(request: Request) -> str:
    """
    Identify the client by IP, honouring the first X-Forwarded-For hop when
    the app runs behind a proxy.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_key(request: Request) -> str:
    """One bucket per client, shared by every /api route."""
    return f"api:{client_identifier(request)}"


async def rate_limit_exceeded(request: Request, response: Response, pexpire: int):
    """fastapi-limiter callback: `pexpire` is the remaining window in milliseconds."""
    retry_after = math.ceil(pexpire / 1000)
    logger.warning(f"Rate limit exceeded for {client_identifier(request)} on {request.url.path}")
    raise RateLimitedError(retry_after=retry_after)


async def setup_rate_limiting(app: FastAPI, settings: Settings) -> None:
    """
    Connect to Redis and initialize fastapi-limiter.

    On failure the API keeps running without rate limiting.
    """
    app.state.rate_limiter = None
    app.state.rate_limit_redis = None

    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting disabled by configuration")
        return

    try:
        # Initialize Redis connection for rate limiting
        redis_instance = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

        # Test Redis connection
        await redis_instance.ping()

        await FastAPILimiter.init(
            redis_instance,
            identifier=rate_limit_key,
            http_callback=rate_limit_exceeded,
        )
    except (RedisError, OSError) as e:
        logger.error(f"Failed to initialize rate limiting: {str(e)}")
        logger.warning("API will run without rate limiting protection")
        return

    app.state.rate_limit_redis = redis_instance
    app.state.rate_limiter = RateLimiter(
        times=settings.RATE_LIMIT_MAX_REQUESTS,
        milliseconds=settings.RATE_LIMIT_WINDOW_MS,
    )
    logger.info(
        f"Rate limiting initialized: {settings.RATE_LIMIT_MAX_REQUESTS} requests "
        f"per {settings.RATE_LIMIT_WINDOW_MS} ms"
    )


async def shutdown_rate_limiting(app: FastAPI) -> None:
    redis_instance = getattr(app.state, "rate_limit_redis", None)
    if redis_instance is not None:
        await redis_instance.aclose()
        FastAPILimiter.redis = None
        app.state.rate_limit_redis = None
        app.state.rate_limiter = None


async def rate_limit(request: Request, response: Response) -> None:
    """
    Router dependency enforcing the per-client limit. A no-op when rate
    limiting was not initialized.
    """
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or FastAPILimiter.redis is None:
        return

    # Keyed on the client only, never on the matched route
    key = f"{FastAPILimiter.prefix}:{await FastAPILimiter.identifier(request)}"
    try:
        pexpire = await limiter._check(key)
    except NoScriptError:
        FastAPILimiter.lua_sha = await FastAPILimiter.redis.script_load(FastAPILimiter.lua_script)
        pexpire = await limiter._check(key)

    if pexpire != 0:
        await FastAPILimiter.http_callback(request, response, pexpire)


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """
    Middleware to redirect HTTP requests to HTTPS in production.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Proxies terminate TLS and forward the original scheme
        scheme = request.headers.get("X-Forwarded-Proto", request.url.scheme)
        if scheme == "http":
            https_url = str(request.url.replace(scheme="https"))
            logger.debug(f"Redirecting HTTP request to HTTPS: {https_url}")
            return RedirectResponse(https_url, status_code=301)

        return await call_next(request)


def setup_https_redirect(app: FastAPI, settings: Settings) -> None:
    """
    Add HTTPS redirect middleware to the FastAPI application.

    This is only active in production mode.
    """
    if settings.is_production:
        logger.info("Setting up HTTPS redirect middleware for production")
        app.add_middleware(HTTPSRedirectMiddleware)
    else:
        logger.debug("HTTPS redirect middleware not added (not in production mode)")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging API requests and their processing time.

    This logs information about each request including:
    - HTTP method
    - URL
    - Status code
    - Processing time
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        log_request_details(logger, request, process_time, response.status_code)
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        return response


def setup_request_logging(app: FastAPI) -> None:
    logger.info("Setting up request logging middleware")
    app.add_middleware(RequestLoggingMiddleware)


def setup_all_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Configure and add all middleware to the FastAPI application.

    Rate limiting needs Redis and is initialized separately, in the
    application lifespan, by `setup_rate_limiting`.

    Args:
        app: The FastAPI application instance
        settings: Application settings
    """
    # Starlette wraps in reverse order, so the last added runs first
    setup_request_logging(app)
    setup_https_redirect(app, settings)
    setup_cors(app, settings)
