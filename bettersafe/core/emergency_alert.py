import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlmodel import select, update

from bettersafe.config import settings
from bettersafe.models.emergency import EmergencyAlert, AlertStatus
from bettersafe.utils.notifications import NotificationManager, notification_manager
from bettersafe.utils.timeutils import format_campus_time

logger = logging.getLogger(__name__)

class EmergencyAlertService:
    def __init__(self, manager: Optional[NotificationManager] = None):
        self.manager = manager or notification_manager

    def format_alert_message(self, alert: EmergencyAlert, user_name: str) -> str:
        """Build the SMS/email text sent to a user's emergency contacts"""
        has_coordinates = alert.location_lat is not None and alert.location_lng is not None

        if alert.location_address:
            location_text = alert.location_address
        elif has_coordinates:
            location_text = f"{alert.location_lat}, {alert.location_lng}"
        else:
            location_text = "Location unavailable"

        map_line = ""
        if has_coordinates:
            map_line = (
                f"🗺️  View on Map: https://www.google.com/maps?q="
                f"{alert.location_lat},{alert.location_lng}\n"
            )

        return (
            "🚨 EMERGENCY ALERT\n\n"
            f"{user_name} has triggered an emergency alert and may need help.\n\n"
            f"📍 Location: {location_text}\n"
            f"{map_line}"
            f"⏰ Time: {format_campus_time(alert.created_at)}\n\n"
            "If you can reach them, please check on their safety immediately.\n"
            "If you cannot reach them, consider contacting:\n"
            f"• Howard University Campus Security: {settings.CAMPUS_SECURITY_PHONE}\n"
            f"• DC Emergency Services: {settings.EMERGENCY_SERVICES_PHONE}\n\n"
            f"Alert ID: {alert.id}"
        )

    async def notify_contacts(
        self,
        alert: EmergencyAlert,
        contacts: List[Dict[str, Any]],
        user_name: str
    ) -> Dict[str, Any]:
        """
        Send the alert to every contact concurrently

        A contact counts as notified when either its SMS or its email went out.
        """
        message = self.format_alert_message(alert, user_name)
        subject = f"🚨 Emergency Alert - {user_name} needs help"

        results = await asyncio.gather(
            *[
                self.manager.notify_contact(contact["phone"], contact.get("email"), message, subject)
                for contact in contacts
            ],
            return_exceptions=True
        )

        details = []
        for contact, result in zip(contacts, results):
            if isinstance(result, Exception):
                logger.error(f"Notifying contact {contact.get('name')} failed: {result}")
                result = {"sms": False, "email": False if contact.get("email") else None}
            details.append({
                "contact": contact.get("name"),
                "phone": contact["phone"],
                "sms_success": result["sms"],
                "email_success": result["email"],
            })

        self.manager.log_notification_summary(results_as_channels(details), "emergency")

        notifications_sent = sum(1 for d in details if d["sms_success"] or d["email_success"])
        if notifications_sent < len(details):
            logger.critical(
                f"Emergency alert {alert.id}: only {notifications_sent}/{len(details)} contacts notified"
            )

        return {
            "success": True,
            "alert_id": str(alert.id),
            "notifications_sent": notifications_sent,
            "total_contacts": len(contacts),
            "details": details,
        }

def results_as_channels(details: List[Dict[str, Any]]) -> List[Dict[str, Optional[bool]]]:
    return [{"sms": d["sms_success"], "email": d["email_success"]} for d in details]

# Global instance
emergency_service = EmergencyAlertService()

async def send_emergency_notifications(
    alert_id: uuid.UUID,
    contacts: List[Dict[str, Any]],
    user_name: str
) -> Optional[Dict[str, Any]]:
    """
    Relay an emergency alert to the user's contacts and record the outcome
    Called as a background task from the emergency API endpoint
    """
    from bettersafe.database import AsyncSessionLocal

    try:
        async with AsyncSessionLocal() as db:
            result = await db.execute(
                select(EmergencyAlert).where(EmergencyAlert.id == alert_id)
            )
            alert = result.scalar_one_or_none()

        if alert is None:
            logger.error(f"Emergency alert {alert_id} not found for relay")
            return None

        summary = await emergency_service.notify_contacts(alert, contacts, user_name)
        sent = summary["notifications_sent"]

        # The user may resolve the alert while notifications are going out
        async with AsyncSessionLocal() as db:
            await db.execute(
                update(EmergencyAlert)
                .where(EmergencyAlert.id == alert_id)
                .values(notifications_sent=sent)
            )
            await db.execute(
                update(EmergencyAlert)
                .where(
                    EmergencyAlert.id == alert_id,
                    EmergencyAlert.status != AlertStatus.RESOLVED
                )
                .values(status=AlertStatus.DELIVERED if sent > 0 else AlertStatus.FAILED)
            )
            await db.commit()

        return summary

    except Exception as e:
        logger.critical(f"Emergency notification relay failed for alert {alert_id}: {e}")
        return None
