"""Welcome e-mail endpoint."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from app.schemas.email import EmailSentResponse, WelcomeEmailRequest
from app.services.email_service import (
	EmailDeliveryError,
	EmailNotConfiguredError,
	EmailService,
)

router = APIRouter(prefix="/email", tags=["email"])


@router.post("/welcome", response_model=EmailSentResponse)
async def send_welcome(payload: WelcomeEmailRequest) -> EmailSentResponse:
	service = EmailService()
	if not service.configured:
		raise HTTPException(
			status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
			detail="Email service is not configured",
		)
	if not payload.email or not payload.email.strip():
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

	try:
		await service.send_welcome(payload.email.strip(), payload.name)
	except (EmailNotConfiguredError, EmailDeliveryError) as exc:
		raise HTTPException(
			status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
			detail="Could not send welcome email",
		) from exc
	return EmailSentResponse(ok=True)
