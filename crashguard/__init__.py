"""
crashguard - accident detection with a cancellable emergency countdown

Turns motion, orientation and microphone readings from a handheld device
into an accident severity and, when nobody cancels in time, an emergency
alert.

Components:
- Detection engine: impact classification, sustained-force tracking,
  impact/crash-sound correlation, cooldown gate
- Single-writer detection worker fed by sensor producers
- Alert lifecycle: severity-scaled countdown, spoken/shake/manual
  cancellation, escalation to emergency dispatch
- Microphone level capture, whisper transcription, alert cues
"""

from .config import *
from .models import (
    Severity, EventKind, LifecycleState, MotionSample, OrientationSample,
    AudioSample, DetectionEvent, Thresholds, AlertSession, Position,
    DispatchOutcome, ChannelResult
)
from .detection import AccidentDetector
from .worker import DetectionWorker
from .alert import AlertLifecycle, LifecycleObserver
from .emergency import EmergencyDispatcher, DispatchError
from .monitor import CrashMonitor

__version__ = "1.0.0"
