"""Alert and activity feed state.

Dark-vessel alerting:
  1. A vessel is alert-worthy only while ``is_dark`` and
     DARK_THRESHOLD_MINUTES < gap_minutes < DARK_ALERT_WINDOW_MAX_MINUTES.
     The narrow window fires once per blackout instead of every cycle.
  2. Severity: inside a coverage zone → ``suspicious`` ("CRITICAL BLACKOUT");
     outside → ``dark_vessel`` ("SIGNAL LOST").
  3. Dedup: suppressed when an alert of type ``dark_vessel`` for the same MMSI
     is already in the feed.  The check is keyed on ``dark_vessel`` only, so a
     vessel with a prior ``suspicious`` alert can alert again.
  4. Every alert is prepended (newest-first) with a derived activity entry;
     both lists are truncated to MAX_ALERTS / MAX_ACTIVITY.

``add_alert`` is the only mutation entry point.  There is no close/expire
operation: "active" alerts are those within ACTIVE_ALERT_HOURS of now.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional

from darkwatch.config import settings
from darkwatch.schemas.alerts import ActivityEntry, ActivityTypeEnum, Alert, AlertTypeEnum
from darkwatch.schemas.vessel import Vessel
from darkwatch.utils.timestamps import ensure_utc, utcnow

logger = logging.getLogger(__name__)

CRITICAL_BLACKOUT_LABEL = "CRITICAL BLACKOUT"
SIGNAL_LOST_LABEL = "SIGNAL LOST"


class AlertManager:
    """Owns the alert and activity feeds. Mutate only from the ingest path."""

    def __init__(
        self,
        max_alerts: Optional[int] = None,
        max_activity: Optional[int] = None,
        dark_threshold_minutes: Optional[float] = None,
        alert_window_max_minutes: Optional[float] = None,
        active_window_hours: Optional[float] = None,
    ) -> None:
        self.max_alerts = settings.MAX_ALERTS if max_alerts is None else max_alerts
        self.max_activity = settings.MAX_ACTIVITY if max_activity is None else max_activity
        self.dark_threshold_minutes = (
            settings.DARK_THRESHOLD_MINUTES if dark_threshold_minutes is None else dark_threshold_minutes
        )
        self.alert_window_max_minutes = (
            settings.DARK_ALERT_WINDOW_MAX_MINUTES
            if alert_window_max_minutes is None else alert_window_max_minutes
        )
        self.active_window_hours = (
            settings.ACTIVE_ALERT_HOURS if active_window_hours is None else active_window_hours
        )
        self.alerts: list[Alert] = []
        self.recent_activity: list[ActivityEntry] = []

    def add_alert(self, alert: Alert) -> None:
        self.alerts.insert(0, alert)
        self.recent_activity.insert(0, ActivityEntry(
            id=alert.id,
            type=ActivityTypeEnum.ALERT,
            message=alert.message,
            timestamp=alert.timestamp,
        ))
        if len(self.alerts) > self.max_alerts:
            del self.alerts[self.max_alerts:]
        if len(self.recent_activity) > self.max_activity:
            del self.recent_activity[self.max_activity:]

    def is_alert_worthy(self, vessel: Vessel) -> bool:
        gap = vessel.gap_minutes
        if not vessel.is_dark or gap is None:
            return False
        return self.dark_threshold_minutes < gap < self.alert_window_max_minutes

    def has_dark_vessel_alert(self, mmsi: int) -> bool:
        return any(
            a.type == AlertTypeEnum.DARK_VESSEL and a.vessel is not None and a.vessel.mmsi == mmsi
            for a in self.alerts
        )

    def process_vessels(self, vessels: Iterable[Vessel], now: Optional[datetime] = None) -> list[Alert]:
        """Emit dark-vessel alerts for one ingest cycle, in input order.

        Returns the alerts emitted this cycle (oldest first).
        """
        now = ensure_utc(now) if now is not None else utcnow()
        emitted: list[Alert] = []
        for vessel in vessels:
            if not self.is_alert_worthy(vessel):
                continue
            if self.has_dark_vessel_alert(vessel.mmsi):
                logger.debug("Dark alert for MMSI %s suppressed, already open.", vessel.mmsi)
                continue
            alert = self._dark_alert(vessel, now)
            self.add_alert(alert)
            emitted.append(alert)
            logger.info("Alert %s: %s", alert.type.value, alert.message)
        return emitted

    def _dark_alert(self, vessel: Vessel, now: datetime) -> Alert:
        if vessel.in_coverage:
            label, severity = CRITICAL_BLACKOUT_LABEL, AlertTypeEnum.SUSPICIOUS
        else:
            label, severity = SIGNAL_LOST_LABEL, AlertTypeEnum.DARK_VESSEL
        return Alert(
            id=f"dark-{vessel.mmsi}-{uuid.uuid4().hex[:12]}",
            type=severity,
            message=f"{label}: {vessel.name or vessel.mmsi} ({vessel.gap_minutes}m gap)",
            timestamp=now,
            vessel=vessel.model_copy(deep=True),
        )

    def active_alerts(self, now: Optional[datetime] = None) -> list[Alert]:
        now = ensure_utc(now) if now is not None else utcnow()
        cutoff = now - timedelta(hours=self.active_window_hours)
        return [a for a in self.alerts if ensure_utc(a.timestamp) > cutoff]
