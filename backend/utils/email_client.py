# backend/utils/email_client.py
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

import httpx

from config import settings
from models.order import Order
from services.errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    status_code: int
    message_id: Optional[str] = None


def _html_template(title: str, content: str) -> str:
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html lang="es">
<head><meta charset="UTF-8"><title>{title}</title></head>
<body style="margin:0;padding:0;font-family:Arial,sans-serif;color:#333;background:#f8f9fa;">
  <div style="max-width:600px;margin:0 auto;background:#fff;border-radius:10px;overflow:hidden;">
    <div style="background:#2c3e50;padding:25px 20px;text-align:center;">
      <div style="color:#fff;font-size:22px;font-weight:bold;">{settings.COMPANY_NAME}</div>
      <div style="color:#ecf0f1;font-size:13px;font-style:italic;">{settings.COMPANY_SLOGAN}</div>
    </div>
    <div style="padding:30px;">{content}</div>
    <div style="background:#2c3e50;color:#fff;padding:20px;text-align:center;font-size:12px;">
      &copy; {year} {settings.COMPANY_NAME}
    </div>
  </div>
</body>
</html>"""


class EmailClient:
    """Transactional e-mail over the SendGrid v3 HTTP API."""

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.api_url = settings.SENDGRID_API_URL
        self.api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.sender = settings.EMAIL_FROM
        self.timeout = settings.NOTIFICATION_TIMEOUT_SECONDS
        self.orders_url = urljoin(settings.FRONTEND_URL, "/mis-ordenes")
        self._transport = transport

    def _send(self, message: dict) -> DeliveryResult:
        if not self.api_key:
            raise NotificationError("E-mail delivery is not configured (SENDGRID_API_KEY missing)")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = client.post(self.api_url, json=message, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"SendGrid rejected message: {e.response.status_code} {e.response.text[:500]}")
                raise NotificationError(f"E-mail provider returned {e.response.status_code}") from e
            except httpx.RequestError as e:
                logger.error(f"SendGrid request failed: {e}")
                raise NotificationError(f"E-mail provider unreachable: {e}") from e

        return DeliveryResult(status_code=response.status_code, message_id=response.headers.get("X-Message-Id"))

    def _message(self, to: str, subject: str, html: str, text: str) -> dict:
        return {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.sender, "name": settings.COMPANY_NAME},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": _html_template(subject, html)},
            ],
        }

    def send_invoice(self, email: str, order: Order, document: bytes) -> DeliveryResult:
        subject = f"{settings.COMPANY_NAME} - Confirmación de Compra #{order.id}"
        name = order.customer_name or "Cliente"
        html = (
            f"<p style='font-size:18px;font-weight:600;'>¡Hola {name}!</p>"
            f"<p>Gracias por tu compra en <strong>{settings.COMPANY_NAME}</strong>. Tu pedido ha sido confirmado.</p>"
            f"<p><strong>Número de Orden:</strong> #{order.id}<br>"
            f"<strong>Total:</strong> ${order.total} {settings.CURRENCY}</p>"
            f"<p>Encontrarás la factura en formato PDF adjunta.</p>"
            f"<p><a href='{self.orders_url}'>Ver estado de mi pedido</a></p>"
        )
        text = (
            f"Hola {name},\n\nGracias por tu compra #{order.id}. Adjunto encontrarás tu factura.\n\n"
            f"{settings.COMPANY_NAME} - {settings.COMPANY_SLOGAN}"
        )
        message = self._message(email, subject, html, text)
        message["attachments"] = [{
            "content": base64.b64encode(document).decode("ascii"),
            "filename": f"Factura_{order.id}_Nova_Hogar.pdf",
            "type": "application/pdf",
            "disposition": "attachment",
        }]

        result = self._send(message)
        logger.info(f"Invoice e-mail for order {order.id} sent to {email}")
        return result

    def send_welcome_coupon(self, email: str, name: Optional[str], code: str, discount_percentage: int) -> DeliveryResult:
        subject = f"{settings.COMPANY_NAME} - ¡Bienvenido a nuestra comunidad!"
        greeting = name or "Amigo"
        html = (
            f"<p style='font-size:18px;font-weight:600;'>¡Hola {greeting}!</p>"
            f"<p>Te damos la más cordial bienvenida a nuestra comunidad.</p>"
            f"<div style='border:2px dashed #4caf50;padding:25px;text-align:center;'>"
            f"<p>Tu cupón de {discount_percentage}% de descuento:</p>"
            f"<p style='font-size:24px;font-weight:bold;'>{code}</p></div>"
        )
        text = (
            f"Hola {greeting},\n\nTu cupón de {discount_percentage}% de descuento: {code}\n\n"
            f"{settings.COMPANY_NAME} - {settings.COMPANY_SLOGAN}"
        )
        return self._send(self._message(email, subject, html, text))


def get_email_client() -> EmailClient:
    return EmailClient()
