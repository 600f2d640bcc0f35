"""Redis-backed per-farm rate limiting."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.auth.dependencies import extract_identity_hint, extract_request_farm_id
from app.config import get_settings

_BYPASS_PREFIXES = ("/docs", "/redoc", "/openapi", "/health")

logger = structlog.get_logger("nimbo.rate_limit")


class RateLimitMiddleware(BaseHTTPMiddleware):
	"""Fixed one-minute window per farm and caller kind, counted with ``INCR``."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		if request.url.path.startswith(_BYPASS_PREFIXES):
			return await call_next(request)

		farm_id = extract_request_farm_id(request)
		if farm_id is None:
			return await call_next(request)

		redis_client = getattr(request.app.state, "redis", None)
		if redis_client is None:
			return await call_next(request)

		quota = get_settings().rate_limit_user_per_minute
		identity = extract_identity_hint(request)
		window = datetime.now(UTC).strftime("%Y%m%d%H%M")
		key = f"ratelimit:farm:{farm_id}:{identity}:{window}"
		current = await redis_client.incr(key)
		if current == 1:
			await redis_client.expire(key, 65)

		if current > quota:
			logger.info("rate_limited", farm_id=str(farm_id), identity=identity, quota=quota)
			return JSONResponse(
				status_code=429,
				content={
					"detail": {
						"error": "rate_limited",
						"message": "Farm request quota exceeded",
						"farm_id": str(farm_id),
						"quota": quota,
					}
				},
			)

		return await call_next(request)
