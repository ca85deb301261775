"""Email sending via Resend API.

Plain-text sign-in emails for administrators (magic link) and visitors
(login link). Delivery failures raise EmailDeliveryError so callers can
answer with a 500 instead of claiming the link was sent.
"""

import logging

import httpx

from fundroom.core.config import settings
from fundroom.core.errors import EmailDeliveryError
from fundroom.core.logging import mask_email

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def _send(*, to_email: str, subject: str, text: str) -> None:
    """POST one message to Resend.

    Args:
        to_email: Recipient address.
        subject: Subject line.
        text: Plain-text body.

    Raises:
        EmailDeliveryError: If the request fails or Resend rejects it.
    """
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
                },
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": subject,
                    "text": text,
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning(
            "Failed to send email to %s", mask_email(to_email), exc_info=True
        )
        raise EmailDeliveryError("Email delivery failed") from exc


async def send_admin_login_email(*, to_email: str, magic_link: str) -> None:
    """Send the administrator magic link.

    Args:
        to_email: Administrator address.
        magic_link: Absolute verification URL.

    Raises:
        EmailDeliveryError: On delivery failure.
    """
    await _send(
        to_email=to_email,
        subject="Your FundRoom admin login link",
        text=(
            f"Click this link to sign in to the FundRoom admin portal:\n\n"
            f"{magic_link}\n\n"
            "This link expires in 60 minutes and can be used once. "
            "If you didn't request this, you can safely ignore this email."
        ),
    )


async def send_login_link_email(*, to_email: str, url: str) -> None:
    """Send a visitor sign-in link.

    Args:
        to_email: Visitor address.
        url: Absolute verification URL.

    Raises:
        EmailDeliveryError: On delivery failure.
    """
    await _send(
        to_email=to_email,
        subject="Your FundRoom login link",
        text=(
            f"Click this link to sign in:\n\n{url}\n\n"
            "This link expires in 30 minutes and can be used once. "
            "If you didn't request this, you can safely ignore this email."
        ),
    )
