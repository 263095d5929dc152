"""
Accident detection engine
Classifies motion, orientation and audio samples, correlates impact with
crash sounds and decides when an alert may be requested
"""

import logging
from collections import deque

from .models import Severity, EventKind, DetectionEvent, Thresholds
from .config import (
    ALERT_COOLDOWN_MS, AUDIO_DUPLICATE_WINDOW_MS,
    IMPACT_CORRELATION_WINDOW_MS, HISTORY_SIZE
)

logger = logging.getLogger(__name__)


class AccidentDetector:
    """
    Owns all mutable detection state: the sustained-force tracker, the
    previous orientation, the event history and the cooldown timestamp.

    Not thread-safe on its own; drive it from a single thread
    (see DetectionWorker).
    """

    def __init__(self, thresholds=None, alert_sink=None):
        self.thresholds = thresholds or Thresholds()
        self.alert_sink = alert_sink

        self._history = deque(maxlen=HISTORY_SIZE)
        self._listeners = []

        self.last_request_time = None
        self.high_force_start_time = None
        self.previous_orientation = None

    # -------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------
    def add_listener(self, callback):
        """Register callback(severity), called for every recorded event"""
        self._listeners.append(callback)

    @property
    def history(self):
        return list(self._history)

    # -------------------------------------------------------------------
    # Impact path
    # -------------------------------------------------------------------
    def classify_impact(self, impact_force, duration):
        t = self.thresholds

        if impact_force >= t.critical or (
            impact_force >= t.high and duration >= t.sustained_force_duration
        ):
            return Severity.CRITICAL
        if impact_force >= t.high:
            return Severity.HIGH
        if impact_force >= t.medium:
            return Severity.MEDIUM
        if impact_force >= t.low:
            return Severity.LOW
        return Severity.NONE

    def process_motion(self, sample):
        now = sample.timestamp
        impact_force = sample.impact_force

        if impact_force < self.thresholds.low:
            self.high_force_start_time = None
            return None

        if self.high_force_start_time is None:
            self.high_force_start_time = now
        duration = now - self.high_force_start_time

        severity = self.classify_impact(impact_force, duration)
        event = self._record(EventKind.IMPACT, severity,
                             {"force": impact_force, "duration": duration}, now)

        self.request_alert(severity, {"impact_force": impact_force, "duration": duration}, now)
        return event

    # -------------------------------------------------------------------
    # Rotation path (recorded as evidence only)
    # -------------------------------------------------------------------
    def process_orientation(self, sample):
        previous = self.previous_orientation
        self.previous_orientation = sample
        if previous is None:
            return None

        delta_alpha = abs(sample.alpha - previous.alpha)
        delta_beta = abs(sample.beta - previous.beta)
        delta_gamma = abs(sample.gamma - previous.gamma)

        limit = self.thresholds.sudden_rotation
        if delta_beta > limit or delta_gamma > limit:
            logger.warning("Sudden rotation detected - possible rollover "
                           f"(beta {delta_beta:.1f}, gamma {delta_gamma:.1f})")
            return self._record(
                EventKind.ROTATION, Severity.HIGH,
                {"delta_alpha": delta_alpha, "delta_beta": delta_beta, "delta_gamma": delta_gamma},
                sample.timestamp,
            )
        return None

    # -------------------------------------------------------------------
    # Audio correlation path
    # -------------------------------------------------------------------
    def process_audio(self, sample):
        if sample.level_db < self.thresholds.crash_sound_level:
            return None

        now = sample.timestamp
        if self.last_request_time is not None and \
                now - self.last_request_time < AUDIO_DUPLICATE_WINDOW_MS:
            return None

        impact = self.recent_impact(now, IMPACT_CORRELATION_WINDOW_MS)
        if impact is None:
            logger.debug(f"Loud sound without recent impact: {sample.level_db:.0f} dB")
            return None

        logger.warning(f"Loud crash sound detected: {sample.level_db:.0f} dB")
        severity = impact.severity.upgraded()
        event = self._record(EventKind.COMBINED, severity, {"sound_level": sample.level_db}, now)

        self.request_alert(severity, {"sound_level": sample.level_db, "combined": True}, now)
        return event

    def recent_impact(self, now, window_ms):
        """Most recent impact event no older than window_ms, or None"""
        for event in reversed(self._history):
            if event.kind is EventKind.IMPACT and now - event.timestamp <= window_ms:
                return event
        return None

    # -------------------------------------------------------------------
    # Alert request gate
    # -------------------------------------------------------------------
    def request_alert(self, severity, details, now):
        """
        Forward severity and details to the alert sink unless the cooldown
        is still running or the severity is too low. Returns True when the
        request was forwarded.
        """
        if self.last_request_time is not None and now - self.last_request_time < ALERT_COOLDOWN_MS:
            return False

        if severity <= Severity.LOW:
            logger.warning(f"{severity.label} severity impact detected - no alert")
            return False

        self.last_request_time = now
        logger.critical(f"ACCIDENT DETECTED - Severity: {severity.label.upper()}")

        if self.alert_sink is not None:
            self.alert_sink(severity, details)
        return True

    def rearm(self):
        """Allow the next qualifying sample to request an alert again"""
        self.last_request_time = None
        logger.info("Detection re-armed")

    def _record(self, kind, severity, metrics, timestamp):
        event = DetectionEvent(kind=kind, severity=severity, metrics=metrics, timestamp=timestamp)
        self._history.append(event)

        for callback in list(self._listeners):
            try:
                callback(severity)
            except Exception as e:
                logger.error(f"Severity listener failed: {e}")
        return event
