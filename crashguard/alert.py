"""
Alert lifecycle
Runs the cancellable countdown for a detected accident and escalates to
emergency dispatch when nobody cancels it in time
"""

import dataclasses
import functools
import logging
import threading

from .models import Severity, LifecycleState, AlertSession, UNAVAILABLE_POSITION
from .emergency import DispatchError
from .config import (
    COUNTDOWN_SECONDS, DEFAULT_COUNTDOWN_SECONDS, URGENT_COUNTDOWN_SECONDS,
    FINAL_WARNING_SECONDS, TICK_INTERVAL_SECONDS, REARM_DELAY_SECONDS,
    MANUAL_CALL_MESSAGE
)

logger = logging.getLogger(__name__)


def countdown_seconds(severity):
    return COUNTDOWN_SECONDS.get(Severity.parse(severity).label, DEFAULT_COUNTDOWN_SECONDS)


class CountdownClock:
    """Calls callback every `interval` seconds on a background thread until stopped"""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self._stop_event = threading.Event()
        self._thread = None

    def start(self):
        self._thread = threading.Thread(target=self._run, name="alert-countdown", daemon=True)
        self._thread.start()

    def stop(self):
        # never joins: callers may hold the lifecycle lock the clock thread is waiting on
        self._stop_event.set()

    def _run(self):
        while not self._stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Countdown tick failed: {e}")


class LifecycleObserver:
    """
    Presentation hooks. Subclass and override what you need; calls arrive
    in registration order, possibly from background threads.
    """

    def on_state_change(self, state, session):
        pass

    def on_tick(self, session):
        pass

    def on_dispatched(self, outcome):
        pass

    def on_dispatch_failed(self, severity, reason):
        pass


class AlertLifecycle:
    """
    Single alert session state machine:
    IDLE -> ACTIVE -> CANCELLED -> IDLE, or ACTIVE -> ESCALATED -> IDLE.

    One lock guards the state, so countdown expiry and a cancellation can
    never both win. A cancellation already received when the countdown
    expires is honoured.
    """

    def __init__(self, dispatcher=None, location_provider=None, cues=None,
                 cancel_listeners=(), rearm=None,
                 tick_interval=TICK_INTERVAL_SECONDS, rearm_delay=REARM_DELAY_SECONDS,
                 clock_factory=CountdownClock, timer_factory=threading.Timer):
        self.dispatcher = dispatcher
        self.location_provider = location_provider
        self.cues = cues
        self.cancel_listeners = list(cancel_listeners)
        self.rearm = rearm
        self.tick_interval = tick_interval
        self.rearm_delay = rearm_delay
        self.clock_factory = clock_factory
        self.timer_factory = timer_factory

        self._lock = threading.RLock()
        self._state = LifecycleState.IDLE
        self._session = None
        self._session_counter = 0
        self._clock = None
        self._cancel_received = None
        self._rearm_timer = None
        self._observers = []

    # -------------------------------------------------------------------
    # Observers / inspection
    # -------------------------------------------------------------------
    def add_observer(self, observer):
        self._observers.append(observer)

    @property
    def state(self):
        return self._state

    @property
    def session(self):
        with self._lock:
            return self._snapshot()

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def trigger(self, severity, details=None):
        """Start a countdown for `severity`. Dropped unless the lifecycle is idle."""
        severity = Severity.parse(severity)

        with self._lock:
            if self._state is not LifecycleState.IDLE:
                logger.info(f"Alert already {self._state.value} - dropping {severity.label} trigger")
                return False

            total = countdown_seconds(severity)
            self._session_counter += 1
            self._session = AlertSession(
                session_id=self._session_counter,
                severity=severity,
                details=dict(details or {}),
                countdown_total=total,
                countdown_remaining=total,
            )
            self._state = LifecycleState.ACTIVE
            self._cancel_received = None

            self._clock = self.clock_factory(self.tick_interval,
                                             functools.partial(self.tick, self._session_counter))
            self._clock.start()
            for listener in self.cancel_listeners:
                listener.arm(self.cancel)
            if self.cues is not None:
                self.cues.start()

            session = self._snapshot()

        logger.error(f"Alert triggered - Severity: {severity.label} ({total}s countdown)")
        self._notify("on_state_change", LifecycleState.ACTIVE, session)
        return True

    def tick(self, session_id=None):
        """One countdown step; escalates once the countdown drops below zero"""
        urgent = False
        with self._lock:
            if self._state is not LifecycleState.ACTIVE:
                return

            session = self._session
            if session_id is not None and session_id != session.session_id:
                # late tick from a clock that belonged to an earlier session
                return
            session.countdown_remaining -= 1
            remaining = session.countdown_remaining

            if remaining < 0:
                if self._cancel_received == session.session_id:
                    logger.warning("Cancellation received as the countdown expired - honouring cancellation")
                    events = self._cancel_locked("expiry-tie")
                else:
                    logger.error("Countdown reached zero!")
                    events = None
                    escalating = self._begin_escalation_locked()
            else:
                urgent = 1 <= remaining <= URGENT_COUNTDOWN_SECONDS
                if remaining == FINAL_WARNING_SECONDS:
                    logger.error(f"WARNING: {FINAL_WARNING_SECONDS} seconds remaining!")
                snapshot = self._snapshot()

        if remaining < 0:
            if events is not None:
                self._flush(events)
            else:
                self._escalate(escalating)
            return

        if urgent and self.cues is not None:
            self.cues.urgent()
        self._notify("on_tick", snapshot)

    def cancel(self, source="manual"):
        """Stand the active alert down. Returns False when there was nothing to cancel."""
        pending = self._session
        if pending is not None:
            self._cancel_received = pending.session_id

        with self._lock:
            if self._state is not LifecycleState.ACTIVE:
                logger.debug(f"Cancel from {source} ignored - lifecycle is {self._state.value}")
                return False
            events = self._cancel_locked(source)

        self._flush(events)
        return True

    def force_escalate_now(self):
        """Skip the rest of the countdown and dispatch immediately"""
        with self._lock:
            if self._state is not LifecycleState.ACTIVE:
                logger.info("No active alert to escalate")
                return None
            logger.error("User requested immediate emergency assistance")
            escalating = self._begin_escalation_locked()

        return self._escalate(escalating)

    def shutdown(self):
        """Stop timers and listeners without dispatching anything"""
        with self._lock:
            self._disarm_locked()
            self._state = LifecycleState.IDLE
            self._session = None
            if self._rearm_timer is not None:
                self._rearm_timer.cancel()
                self._rearm_timer = None

    # -------------------------------------------------------------------
    # Internals (call *_locked with self._lock held)
    # -------------------------------------------------------------------
    def _disarm_locked(self):
        if self._clock is not None:
            self._clock.stop()
            self._clock = None
        for listener in self.cancel_listeners:
            listener.disarm()
        if self.cues is not None:
            self.cues.stop()

    def _cancel_locked(self, source):
        self._disarm_locked()
        self._state = LifecycleState.CANCELLED
        cancelled = self._snapshot()
        self._state = LifecycleState.IDLE
        self._session = None

        logger.info(f"Alert cancelled ({source})")
        self._schedule_rearm()
        return [
            ("on_state_change", LifecycleState.CANCELLED, cancelled),
            ("on_state_change", LifecycleState.IDLE, None),
        ]

    def _begin_escalation_locked(self):
        self._disarm_locked()
        self._state = LifecycleState.ESCALATED
        return self._snapshot()

    def _escalate(self, session):
        """Runs without the lock; ESCALATED keeps triggers and cancels out meanwhile"""
        self._notify("on_state_change", LifecycleState.ESCALATED, session)
        logger.error("No response from user - sending emergency alert")

        details = dict(session.details)
        details["location"] = self._locate()

        outcome = None
        try:
            if self.dispatcher is None:
                raise DispatchError("Emergency handler not available")
            outcome = self.dispatcher.send_alert(session.severity, details)
        except Exception as e:
            logger.error(f"Failed to send emergency alert: {e}")
            self._notify("on_dispatch_failed", session.severity, MANUAL_CALL_MESSAGE)
        else:
            if outcome.success:
                logger.info(f"Emergency alert sent via {', '.join(outcome.notified)}")
                self._notify("on_dispatched", outcome)
            else:
                logger.error("Emergency alert could not be delivered on any channel")
                self._notify("on_dispatch_failed", session.severity, MANUAL_CALL_MESSAGE)
        finally:
            with self._lock:
                self._state = LifecycleState.IDLE
                self._session = None
            self._notify("on_state_change", LifecycleState.IDLE, None)

        return outcome

    def _locate(self):
        if self.location_provider is None:
            logger.warning("No location provider - emergency alert will be sent WITHOUT location data")
            return UNAVAILABLE_POSITION
        try:
            return self.location_provider.get_current_position()
        except Exception as e:
            logger.warning(f"Could not get GPS location: {e}")
            logger.warning("Emergency alert will be sent WITHOUT location data")
            return UNAVAILABLE_POSITION

    def _schedule_rearm(self):
        if self.rearm is None:
            return
        if self._rearm_timer is not None:
            self._rearm_timer.cancel()
        self._rearm_timer = self.timer_factory(self.rearm_delay, self._run_rearm)
        self._rearm_timer.daemon = True
        self._rearm_timer.start()

    def _run_rearm(self):
        self._rearm_timer = None
        try:
            self.rearm()
        except Exception as e:
            logger.error(f"Failed to re-arm detection: {e}")

    def _snapshot(self):
        if self._session is None:
            return None
        return dataclasses.replace(self._session, state=self._state, details=dict(self._session.details))

    def _flush(self, events):
        for method, *args in events:
            self._notify(method, *args)

    def _notify(self, method, *args):
        for observer in list(self._observers):
            handler = getattr(observer, method, None)
            if handler is None:
                continue
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Lifecycle observer {method} failed: {e}")
