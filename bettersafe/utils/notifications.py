import asyncio
import aiohttp
import aiosmtplib
import logging
from typing import List, Dict, Optional
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from bettersafe.config import settings

logger = logging.getLogger(__name__)

def mask_phone(phone_number: str) -> str:
    return f"{phone_number[:5]}****" if phone_number else "****"

class SMSService:
    """SMS notification service backed by the Twilio Messages API"""

    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.api_url = settings.TWILIO_API_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send_sms(self, phone_number: str, message: str) -> bool:
        """
        Send SMS to a phone number

        Args:
            phone_number: Recipient phone number (e.g., (202) 555-0143 or +12025550143)
            message: SMS message content
        """
        if not self.is_configured:
            logger.error("Twilio credentials not configured")
            return False

        try:
            formatted_number = self._format_phone_number(phone_number)
            payload = {
                "To": formatted_number,
                "From": self.from_number,
                "Body": message
            }

            success = await self._send_sms_request(payload)

            if success:
                logger.info(f"SMS sent successfully to {mask_phone(formatted_number)}")
            else:
                logger.error(f"Failed to send SMS to {mask_phone(formatted_number)}")

            return success

        except Exception as e:
            logger.error(f"SMS sending error: {e}")
            return False

    def _format_phone_number(self, phone_number: str) -> str:
        """Format phone number to E.164, assuming US numbers without a country code"""
        cleaned = ''.join(c for c in phone_number if c.isdigit() or c == '+')

        if cleaned.startswith('+'):
            return cleaned
        if len(cleaned) == 10:
            return '+1' + cleaned
        if len(cleaned) == 11 and cleaned.startswith('1'):
            return '+' + cleaned
        return '+' + cleaned

    async def _send_sms_request(self, payload: Dict) -> bool:
        """Send form-encoded request to Twilio"""
        url = f"{self.api_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    data=payload,
                    auth=aiohttp.BasicAuth(self.account_sid, self.auth_token),
                    timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS)
                ) as response:

                    if 200 <= response.status < 300:
                        return True

                    response_text = await response.text()
                    logger.error(f"Twilio error: {response.status} - {response_text}")
                    return False

        except asyncio.TimeoutError:
            logger.error("SMS request timeout")
            return False
        except Exception as e:
            logger.error(f"SMS request error: {e}")
            return False

class EmailService:
    """Email notification service (SendGrid, falling back to SMTP)"""

    def __init__(self):
        self.sendgrid_api_key = settings.SENDGRID_API_KEY
        self.sendgrid_url = settings.SENDGRID_API_URL
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None
    ) -> bool:
        """
        Send email notification

        Args:
            to_email: Recipient email address
            subject: Email subject
            body: Plain text email body
            html_body: HTML email body (optional)
        """
        if self.sendgrid_api_key:
            return await self._send_via_sendgrid(to_email, subject, body, html_body)
        if self.smtp_host:
            return await self._send_via_smtp(to_email, subject, body, html_body)

        logger.warning("Email provider not configured, skipping email")
        return False

    async def _send_via_sendgrid(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str]
    ) -> bool:
        content = [{"type": "text/plain", "value": body}]
        if html_body:
            content.append({"type": "text/html", "value": html_body})

        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": content
        }
        headers = {
            "Authorization": f"Bearer {self.sendgrid_api_key}",
            "Content-Type": "application/json"
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.sendgrid_url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS)
                ) as response:

                    if 200 <= response.status < 300:
                        logger.info(f"Email sent successfully to {to_email}")
                        return True

                    response_text = await response.text()
                    logger.error(f"SendGrid error: {response.status} - {response_text}")
                    return False

        except Exception as e:
            logger.error(f"Email sending error to {to_email}: {e}")
            return False

    async def _send_via_smtp(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str]
    ) -> bool:
        try:
            message = MIMEMultipart('alternative')
            message['From'] = f"{self.from_name} <{self.from_email}>"
            message['To'] = to_email
            message['Subject'] = subject

            message.attach(MIMEText(body, 'plain'))
            if html_body:
                message.attach(MIMEText(html_body, 'html'))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                start_tls=True,
                username=self.smtp_username or None,
                password=self.smtp_password or None,
            )

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Email sending error to {to_email}: {e}")
            return False

    def format_emergency_html(self, message: str) -> str:
        """Wrap a plain emergency message in the alert email template"""
        escaped = (
            message.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        )
        return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #dc2626;">🚨 Emergency Alert</h2>
    <p>{escaped.replace(chr(10), '<br>')}</p>
    <hr style="margin: 20px 0; border: none; border-top: 1px solid #e5e7eb;">
    <p style="color: #6b7280; font-size: 12px;">
        This is an automated emergency notification from BetterSafe - Howard University Campus Safety.
        If this is not a real emergency, please contact the sender immediately.
    </p>
</div>
"""

class NotificationManager:
    """Centralized notification management"""

    def __init__(self):
        self.sms_service = SMSService()
        self.email_service = EmailService()

    async def notify_contact(
        self,
        phone: str,
        email: Optional[str],
        message: str,
        subject: str
    ) -> Dict[str, Optional[bool]]:
        """
        Send an SMS and, where an address exists, an email to one contact

        Returns:
            {"sms": bool, "email": bool or None when the contact has no email}
        """
        sms_task = self.sms_service.send_sms(phone, message)
        if email:
            email_task = self.email_service.send_email(
                email, subject, message, self.email_service.format_emergency_html(message)
            )
            sms_success, email_success = await asyncio.gather(sms_task, email_task)
        else:
            sms_success, email_success = await sms_task, None

        return {"sms": sms_success, "email": email_success}

    def log_notification_summary(self, results: List[Dict], notification_type: str):
        """Log summary of notification results"""
        sent = sum(1 for r in results if r.get("sms") or r.get("email"))
        failed = len(results) - sent

        log_level = logger.critical if (notification_type == "emergency" and failed) else logger.info
        log_level(f"Notification summary - Type: {notification_type}, Sent: {sent}, Failed: {failed}")

# Global notification manager instance
notification_manager = NotificationManager()
