"""
storefront/services/email_service.py

Purpose: Transactional email

- Sends HTML email through the provider's HTTP API
- Password reset and reset confirmation messages
- Order confirmation after a successful payment
"""

import httpx
from html import escape
from typing import Dict, Any, List, Optional
from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.utils.time_utils import parse_iso, utc_now

logger = get_logger(__name__)


class EmailService:
    """Service for sending transactional email over HTTP"""

    def __init__(self):
        self.api_url = settings.EMAIL_API_URL
        self.api_key = settings.EMAIL_API_KEY
        self.sender = settings.EMAIL_FROM

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html: str
    ) -> Dict[str, Any]:
        """
        Sends a single email.

        Args:
            to_email: Recipient address
            subject: Subject line
            html: HTML body

        Returns:
            {
                "success": True/False,
                "message_id": "...",
                "error": "Optional error message"
            }
        """
        if not self.is_configured():
            logger.warning(f"Email provider not configured, dropping '{subject}'")
            return {"success": False, "error": "Email provider not configured"}

        try:
            payload = {
                "from": self.sender,
                "to": [to_email],
                "subject": subject,
                "html": html,
            }

            logger.info(f"Sending email '{subject}'", extra={"email": to_email})

            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    timeout=10.0
                )

                if response.status_code in [200, 201, 202]:
                    result = _json_body(response)
                    logger.info(f"Email sent: id={result.get('id')}")
                    return {"success": True, "message_id": result.get("id")}

                logger.error(f"Email API error: {response.status_code} - {response.text}")
                return {
                    "success": False,
                    "error": f"Email API error: {response.status_code}"
                }

        except httpx.TimeoutException:
            logger.error("Email API timeout")
            return {"success": False, "error": "Email API timeout"}
        except httpx.RequestError as e:
            logger.error(f"Error sending email: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def send_password_reset(self, to_email: str, name: Optional[str], reset_url: str) -> Dict[str, Any]:
        html = f"""
            <p>Hello{_greeting_name(name)},</p>
            <p>You requested a password reset. Click the link below to set a new password:</p>
            <p><a href="{escape(reset_url)}">{escape(reset_url)}</a></p>
            <p>This link will expire in {settings.PASSWORD_RESET_TOKEN_HOURS} hour(s).</p>
            <p>If you did not request this, you can ignore this email.</p>
        """
        return await self.send_email(to_email, "Password Reset Request", html)

    async def send_password_changed(self, to_email: str, name: Optional[str]) -> Dict[str, Any]:
        html = f"""
            <p>Hello{_greeting_name(name)},</p>
            <p>Your password was successfully reset. If you did not perform this action, please contact support immediately.</p>
            <p>Thank you!</p>
        """
        return await self.send_email(to_email, "Your Password Was Reset", html)

    async def send_order_confirmation(
        self,
        to_email: str,
        order_number: str,
        items: List[Dict[str, Any]],
        amount: int,
        currency: str = "usd",
        shipping_address: Optional[Dict[str, Any]] = None,
        payment_intent_id: Optional[str] = None,
        paid_at: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Plain HTML order confirmation.

        Args:
            amount: Order total in minor units
            items: Cart lines; `price` is in major units
        """
        paid = parse_iso(paid_at) or utc_now()
        rows = "".join(_item_row(item, currency) for item in items)

        html = f"""
            <h1>Order Confirmation</h1>
            <p>Thank you for your order!</p>
            <p><strong>Order Number:</strong> {escape(order_number)}</p>
            <p><strong>Order Date:</strong> {paid.strftime("%B %d, %Y %H:%M UTC")}</p>
            <p><strong>Payment ID:</strong> {escape(payment_intent_id or "")}</p>
            <h2>Order Details</h2>
            <table>
                <tr><th>Item</th><th>Quantity</th><th>Price</th></tr>
                {rows}
            </table>
            <p><strong>Total: {format_money(amount / 100, currency)}</strong></p>
            <h2>Shipping Address</h2>
            <p>{_address_lines(shipping_address)}</p>
        """
        return await self.send_email(to_email, f"Order Confirmation - {order_number}", html)

    def is_configured(self) -> bool:
        """Check if the email provider is properly configured"""
        return bool(self.api_url and self.api_key)


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    """Provider reply as a dict; an accepted send with an unreadable body still counts."""
    try:
        body = response.json() if response.content else {}
    except ValueError:
        logger.warning(f"Email API returned a non-JSON body: {response.text[:100]}")
        return {}
    return body if isinstance(body, dict) else {}


def format_money(value: float, currency: str) -> str:
    code = (currency or "usd").upper()
    if code == "USD":
        return f"${value:,.2f}"
    return f"{value:,.2f} {code}"


def _greeting_name(name: Optional[str]) -> str:
    return f" {escape(name)}" if name else ""


def _item_row(item: Dict[str, Any], currency: str) -> str:
    details = "".join(
        f"<br><small>{label}: {escape(str(item[key]))}</small>"
        for key, label in (("color", "Color"), ("size", "Size"))
        if item.get(key)
    )
    return (
        f"<tr><td>{escape(str(item.get('name', '')))}{details}</td>"
        f"<td>{item.get('quantity') or 1}</td>"
        f"<td>{format_money(float(item.get('price') or 0), currency)}</td></tr>"
    )


def _address_lines(address: Optional[Dict[str, Any]]) -> str:
    if not address:
        return ""
    city_line = f"{address.get('city', '')}, {address.get('state', '')} {address.get('postalCode', '')}"
    lines = [address.get("name"), address.get("line1"), address.get("line2"), city_line, address.get("country")]
    return "<br>".join(escape(str(line)) for line in lines if line)


# Singleton instance
email_service = EmailService()
