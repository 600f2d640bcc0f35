"""Transactional e-mail through the Resend HTTP API."""

from __future__ import annotations

from datetime import UTC, datetime
from html import escape

import httpx
import structlog

from app.config import Settings, get_settings

logger = structlog.get_logger("nimbo.email")

DEFAULT_RECIPIENT_NAME = "Productor"
WELCOME_SUBJECT = "¡Tu cuenta en Nimbo está lista!"


class EmailNotConfiguredError(Exception):
	pass


class EmailDeliveryError(Exception):
	pass


def recipient_name(name: str | None) -> str:
	cleaned = (name or "").strip()
	return cleaned or DEFAULT_RECIPIENT_NAME


def render_welcome_html(name: str, login_url: str, year: int) -> str:
	safe_name = escape(name)
	return f"""
<div style="font-family: 'Helvetica Neue', Arial, sans-serif; background:#f6f7fb; padding:40px 0;">
  <table cellpadding="0" cellspacing="0" style="max-width:600px;margin:0 auto;background:#ffffff;border-radius:16px;">
    <tr>
      <td style="background:#2e7d32;padding:32px 40px;color:#fff;">
        <h1 style="margin:0;font-size:28px;">¡Bienvenido a Nimbo!</h1>
        <p style="margin:8px 0 0;font-size:16px;">Tu panel inteligente para gestionar el campo.</p>
      </td>
    </tr>
    <tr>
      <td style="padding:32px 40px;color:#172b4d;">
        <p style="font-size:16px;margin:0 0 16px;">Hola {safe_name},</p>
        <p style="font-size:16px;margin:0 0 16px;line-height:1.6;">
          Tu cuenta en <strong>Nimbo</strong> se creó con éxito. Desde ahora podés registrar lluvias,
          organizar tareas, invitar a tu equipo y seguir el clima de tu campo.
        </p>
        <ul style="margin:0 0 24px;padding-left:20px;color:#51606a;line-height:1.6;">
          <li>Configura tu campo y su ubicación.</li>
          <li>Invita a quienes trabajan con vos.</li>
          <li>Registra las primeras lluvias o tareas del día.</li>
        </ul>
        <a href="{escape(login_url)}" style="display:inline-block;padding:14px 28px;border-radius:999px;background:#2e7d32;color:#fff;text-decoration:none;font-weight:600;">
          Entrar a mi cuenta
        </a>
      </td>
    </tr>
    <tr>
      <td style="padding:24px 40px;background:#f8f9fb;color:#94a3b8;font-size:12px;text-align:center;">
        © {year} Nimbo · Gestión Agro Inteligente
      </td>
    </tr>
  </table>
</div>
"""


class EmailService:
	def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
		self.settings = settings or get_settings()
		self.transport = transport

	@property
	def configured(self) -> bool:
		return bool(self.settings.resend_api_key and self.settings.resend_from)

	async def send_welcome(self, email: str, name: str | None = None) -> None:
		if not self.configured:
			raise EmailNotConfiguredError("Email service is not configured")

		body = {
			"from": self.settings.resend_from,
			"to": email,
			"subject": WELCOME_SUBJECT,
			"html": render_welcome_html(recipient_name(name), self.settings.app_login_url, datetime.now(UTC).year),
		}
		headers = {"Authorization": f"Bearer {self.settings.resend_api_key}"}
		try:
			async with httpx.AsyncClient(
				timeout=self.settings.email_timeout_seconds,
				transport=self.transport,
			) as client:
				response = await client.post(self.settings.resend_base_url, headers=headers, json=body)
				response.raise_for_status()
		except httpx.HTTPError as exc:
			logger.error("welcome_email_failed", email=email, error=str(exc))
			raise EmailDeliveryError("Could not send welcome email") from exc
		logger.info("welcome_email_sent", email=email)


async def send_welcome_quietly(email: str, name: str | None = None) -> None:
	"""Background-task entry point after sign-up; delivery problems are only logged."""
	try:
		await EmailService().send_welcome(email, name)
	except (EmailNotConfiguredError, EmailDeliveryError) as exc:
		logger.warning("welcome_email_skipped", email=email, reason=str(exc))
