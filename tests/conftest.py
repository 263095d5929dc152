"""Pytest configuration and fixtures for crashguard tests."""

import os
import sys
from unittest.mock import MagicMock

import numpy as np
import pytest

# Add the repository root to the path for testing without installation
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from crashguard.alert import AlertLifecycle
from crashguard.detection import AccidentDetector
from crashguard.models import DispatchOutcome, ChannelResult, MotionSample
from crashguard.config import STANDARD_GRAVITY


class FakeClock:
    """Countdown clock driven by the test instead of a thread"""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def fire(self, times=1):
        for _ in range(times):
            self.callback()


class FakeTimer:
    """threading.Timer stand-in that only runs when fired"""

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.started = False
        self.cancelled = False
        self.daemon = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


def motion_at(timestamp, g_force):
    """Motion sample whose impact force is exactly g_force"""
    return MotionSample(timestamp, 0.0, 0.0, g_force * STANDARD_GRAVITY)


@pytest.fixture
def alert_requests():
    return []


@pytest.fixture
def detector(alert_requests):
    return AccidentDetector(alert_sink=lambda severity, details: alert_requests.append((severity, details)))


@pytest.fixture
def clocks():
    return []


@pytest.fixture
def timers():
    return []


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.send_alert.side_effect = lambda severity, details: DispatchOutcome(
        severity=severity, message="test", channels=[ChannelResult("Test", True)]
    )
    return mock


@pytest.fixture
def cues():
    return MagicMock()


@pytest.fixture
def make_lifecycle(clocks, timers, dispatcher, cues):
    """Factory for an AlertLifecycle wired to fake clock, timer and collaborators"""

    def clock_factory(interval, callback):
        clock = FakeClock(interval, callback)
        clocks.append(clock)
        return clock

    def timer_factory(delay, function):
        timer = FakeTimer(delay, function)
        timers.append(timer)
        return timer

    def build(**kwargs):
        options = dict(dispatcher=dispatcher, cues=cues, rearm=MagicMock(),
                       clock_factory=clock_factory, timer_factory=timer_factory)
        options.update(kwargs)
        return AlertLifecycle(**options)

    return build


@pytest.fixture
def sine_block():
    """Fixture providing one full-scale 440 Hz audio block."""
    sample_rate = 16000
    t = np.arange(1024) / sample_rate
    return np.sin(440 * 2 * np.pi * t).astype(np.float32)
