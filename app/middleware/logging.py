"""structlog configuration and per-request logging with request-ID propagation."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.auth.dependencies import extract_request_farm_id
from app.config import LogFormat, get_settings

_configured = False

_QUIET_PATHS = frozenset({"/health"})


def configure_structured_logging() -> None:
	"""Configure stdlib logging and structlog once per process."""
	global _configured
	if _configured:
		return

	settings = get_settings()
	level = getattr(logging, settings.log_level.upper(), logging.INFO)

	processors: list[Any] = [
		structlog.contextvars.merge_contextvars,
		structlog.processors.add_log_level,
		structlog.processors.TimeStamper(fmt="iso", utc=True),
		structlog.processors.StackInfoRenderer(),
		structlog.processors.format_exc_info,
	]
	if settings.log_format == LogFormat.json:
		logging.basicConfig(level=level, format="%(message)s")
		processors.append(structlog.processors.JSONRenderer())
	else:
		logging.basicConfig(level=level)
		processors.append(structlog.dev.ConsoleRenderer())

	structlog.configure(
		processors=processors,
		wrapper_class=structlog.make_filtering_bound_logger(level),
		logger_factory=structlog.PrintLoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Bind ``request_id`` (and ``farm_id`` when the path names one) for every log line."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		context: dict[str, str] = {"request_id": request_id}
		farm_id = extract_request_farm_id(request)
		if farm_id is not None:
			context["farm_id"] = str(farm_id)
		structlog.contextvars.bind_contextvars(**context)

		logger = structlog.get_logger("nimbo.request")
		started = time.perf_counter()
		try:
			response = await call_next(request)
		except Exception:
			logger.exception(
				"http_request_failed",
				method=request.method,
				path=request.url.path,
				duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
			)
			raise

		response.headers["x-request-id"] = request_id
		if request.url.path not in _QUIET_PATHS:
			logger.info(
				"http_request",
				method=request.method,
				path=request.url.path,
				status_code=response.status_code,
				duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
			)
		return response
