from datetime import timedelta
from typing import Dict, Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func

from bettersafe.models.incident import IncidentReport, IncidentStatus
from bettersafe.models.emergency import EmergencyAlert, AlertStatus
from bettersafe.core.geofencing import get_nearest_landmark
from bettersafe.utils.timeutils import utcnow, ensure_utc

OPEN_STATUSES = {IncidentStatus.PENDING.value, IncidentStatus.INVESTIGATING.value}

class CampusAnalytics:
    async def get_incident_analytics(self, db: AsyncSession, days_back: int = 7) -> Dict[str, Any]:
        """Incident totals, recent daily counts, hotspots and open/resolved split"""
        by_status = await self._count_by(db, IncidentReport.status)
        by_category = await self._count_by(db, IncidentReport.category)
        by_priority = await self._count_by(db, IncidentReport.priority)
        total = sum(by_status.values())

        open_count = sum(count for status, count in by_status.items() if status in OPEN_STATUSES)
        resolved_count = total - open_count

        return {
            "total_incidents": total,
            "by_status": by_status,
            "by_category": by_category,
            "by_priority": by_priority,
            "daily_counts": await self._daily_counts(db, days_back),
            "hotspots": await self._hotspots(db),
            "open_vs_resolved": {
                "open": open_count,
                "resolved": resolved_count,
                "resolution_rate": round(resolved_count / total * 100, 1) if total else 0.0
            }
        }

    async def get_emergency_analytics(self, db: AsyncSession, days_back: int = 30) -> Dict[str, Any]:
        """Emergency alert patterns and delivery metrics"""
        since = utcnow() - timedelta(days=days_back)

        result = await db.execute(
            select(EmergencyAlert).where(EmergencyAlert.created_at >= since)
        )
        alerts = list(result.scalars().all())

        by_type: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        for alert in alerts:
            by_type[alert.alert_type] = by_type.get(alert.alert_type, 0) + 1
            status = _value(alert.status)
            by_status[status] = by_status.get(status, 0) + 1

        return {
            "period_days": days_back,
            "total_alerts": len(alerts),
            "by_type": by_type,
            "by_status": by_status,
            "delivery_rate": self._calculate_delivery_rate(alerts),
            "avg_resolution_minutes": self._calculate_avg_resolution_time(alerts)
        }

    async def _count_by(self, db: AsyncSession, column) -> Dict[str, int]:
        result = await db.execute(
            select(column, func.count(IncidentReport.id)).group_by(column)
        )
        return {_value(key): count for key, count in result.all()}

    async def _daily_counts(self, db: AsyncSession, days_back: int) -> List[Dict[str, Any]]:
        """Reports per UTC day for the last days_back days, oldest first"""
        today = utcnow().date()
        start_day = today - timedelta(days=days_back - 1)
        since = utcnow() - timedelta(days=days_back)

        result = await db.execute(
            select(IncidentReport.reported_at).where(IncidentReport.reported_at >= since)
        )
        counts = {start_day + timedelta(days=i): 0 for i in range(days_back)}
        for reported_at in result.scalars().all():
            day = ensure_utc(reported_at).date()
            if day in counts:
                counts[day] += 1

        return [{"date": day.isoformat(), "count": count} for day, count in counts.items()]

    async def _hotspots(self, db: AsyncSession, limit: int = 5) -> List[Dict[str, Any]]:
        """Most reported-near landmarks for incidents with coordinates"""
        result = await db.execute(
            select(IncidentReport.latitude, IncidentReport.longitude).where(
                IncidentReport.latitude.is_not(None),
                IncidentReport.longitude.is_not(None)
            )
        )

        by_location: Dict[str, int] = {}
        for latitude, longitude in result.all():
            location = get_nearest_landmark(latitude, longitude)
            by_location[location] = by_location.get(location, 0) + 1

        ranked = sorted(by_location.items(), key=lambda x: (-x[1], x[0]))[:limit]
        return [{"location": location, "count": count} for location, count in ranked]

    def _calculate_delivery_rate(self, alerts: List[EmergencyAlert]) -> float:
        """Share of alerts where at least one contact was notified"""
        if not alerts:
            return 100.0

        delivered = sum(1 for alert in alerts if alert.notifications_sent > 0)
        return round((delivered / len(alerts)) * 100, 1)

    def _calculate_avg_resolution_time(self, alerts: List[EmergencyAlert]) -> Optional[float]:
        """Average alert resolution time in minutes"""
        resolved = [a for a in alerts if a.status == AlertStatus.RESOLVED and a.resolved_at]

        if not resolved:
            return None

        total_minutes = sum(
            (ensure_utc(a.resolved_at) - ensure_utc(a.created_at)).total_seconds() / 60
            for a in resolved
        )
        return round(total_minutes / len(resolved), 1)

def _value(key) -> str:
    return key.value if hasattr(key, "value") else str(key)

# Global analytics instance
campus_analytics = CampusAnalytics()
