"""
Data model for crashguard: sensor samples, severities, detection events,
alert sessions and dispatch outcomes.
"""

import json
import math
import time
from dataclasses import dataclass, field, fields
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

import numpy as np

from .config import (
    STANDARD_GRAVITY, LOW_IMPACT_G, MEDIUM_IMPACT_G, HIGH_IMPACT_G,
    CRITICAL_IMPACT_G, CRASH_SOUND_LEVEL_DB, SUDDEN_ROTATION_DEG,
    SUSTAINED_FORCE_DURATION_MS
)


def now_ms():
    return time.time() * 1000.0


def coerce_reading(value, default=0.0):
    """Turn a raw sensor field into a finite float; anything unusable becomes `default`."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def _coerce_timestamp(value):
    timestamp = coerce_reading(value, default=-1.0)
    return timestamp if timestamp >= 0 else now_ms()


class Severity(IntEnum):
    """Hazard classification, ordered from harmless to critical"""
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    def upgraded(self):
        # A loud crash sound corroborates the impact: bump low/medium one step
        if self is Severity.LOW:
            return Severity.MEDIUM
        if self is Severity.MEDIUM:
            return Severity.HIGH
        return self

    @property
    def label(self):
        return self.name.lower()

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown severity: {value!r}") from None


class EventKind(Enum):
    IMPACT = "impact"
    ROTATION = "rotation"
    COMBINED = "combined"


class LifecycleState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    ESCALATED = "escalated"


@dataclass(frozen=True)
class MotionSample:
    """Acceleration including gravity, in m/s^2"""
    timestamp: float
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "timestamp", _coerce_timestamp(self.timestamp))
        for axis in ("x", "y", "z"):
            object.__setattr__(self, axis, coerce_reading(getattr(self, axis)))

    @property
    def acceleration(self):
        return {"x": self.x, "y": self.y, "z": self.z}

    @property
    def impact_force(self):
        """Total acceleration magnitude in g"""
        return float(np.linalg.norm([self.x, self.y, self.z])) / STANDARD_GRAVITY


@dataclass(frozen=True)
class OrientationSample:
    """Device orientation in degrees"""
    timestamp: float
    alpha: float = 0.0
    beta: float = 0.0
    gamma: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "timestamp", _coerce_timestamp(self.timestamp))
        for angle in ("alpha", "beta", "gamma"):
            object.__setattr__(self, angle, coerce_reading(getattr(self, angle)))


@dataclass(frozen=True)
class AudioSample:
    timestamp: float
    level_db: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "timestamp", _coerce_timestamp(self.timestamp))
        object.__setattr__(self, "level_db", max(0.0, coerce_reading(self.level_db)))


@dataclass(frozen=True)
class DetectionEvent:
    kind: EventKind
    severity: Severity
    metrics: Dict[str, Any]
    timestamp: float


@dataclass(frozen=True)
class Thresholds:
    """Detection cut points; impact levels are in g, durations in ms"""
    low: float = LOW_IMPACT_G
    medium: float = MEDIUM_IMPACT_G
    high: float = HIGH_IMPACT_G
    critical: float = CRITICAL_IMPACT_G
    crash_sound_level: float = CRASH_SOUND_LEVEL_DB
    sudden_rotation: float = SUDDEN_ROTATION_DEG
    sustained_force_duration: float = SUSTAINED_FORCE_DURATION_MS

    def __post_init__(self):
        if not (self.low < self.medium < self.high < self.critical):
            raise ValueError(
                "Impact thresholds must satisfy low < medium < high < critical, got "
                f"{self.low}, {self.medium}, {self.high}, {self.critical}"
            )

    @classmethod
    def from_mapping(cls, values):
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown threshold keys: {', '.join(sorted(unknown))}")
        return cls(**{key: float(value) for key, value in values.items()})

    @classmethod
    def from_json(cls, path):
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_mapping(json.load(f))


@dataclass
class AlertSession:
    session_id: int
    severity: Severity
    details: Dict[str, Any]
    countdown_total: int
    countdown_remaining: int
    state: LifecycleState = LifecycleState.ACTIVE

    @property
    def progress(self):
        if self.countdown_total <= 0:
            return 0.0
        return min(1.0, max(0.0, self.countdown_remaining / self.countdown_total))


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: float = 0.0
    timestamp: float = 0.0
    unavailable: bool = False

    def as_dict(self):
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "timestamp": self.timestamp,
            "unavailable": self.unavailable,
        }


UNAVAILABLE_POSITION = Position(latitude=0.0, longitude=0.0, accuracy=0.0, unavailable=True)


@dataclass(frozen=True)
class ChannelResult:
    channel: str
    success: bool
    error: Optional[str] = None


@dataclass
class DispatchOutcome:
    severity: Severity
    message: str
    channels: List[ChannelResult] = field(default_factory=list)
    location_available: bool = True

    @property
    def success(self):
        return any(result.success for result in self.channels)

    @property
    def notified(self):
        return [result.channel for result in self.channels if result.success]


def sample_from_record(record):
    """
    Build a sample from a replay record such as
    {"type": "motion", "timestamp": 120, "x": 0.1, "y": 9.7, "z": 0.3}
    """
    kind = str(record.get("type", "")).lower()
    timestamp = record.get("timestamp")
    if kind == "motion":
        return MotionSample(timestamp, record.get("x"), record.get("y"), record.get("z"))
    if kind == "orientation":
        return OrientationSample(timestamp, record.get("alpha"), record.get("beta"), record.get("gamma"))
    if kind == "audio":
        return AudioSample(timestamp, record.get("level_db", record.get("level")))
    raise ValueError(f"Unknown sample type: {kind!r}")
