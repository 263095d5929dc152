"""
Crash monitor
Wires sensors, the detection worker, the alert lifecycle and its
cancellation listeners together
"""

import logging

from .detection import AccidentDetector
from .worker import DetectionWorker
from .alert import AlertLifecycle
from .cancellation import KeywordCancelListener, ShakeCancelListener
from .config import TICK_INTERVAL_SECONDS, REARM_DELAY_SECONDS

logger = logging.getLogger(__name__)


class CrashMonitor:
    """
    Main orchestrator: samples -> DetectionWorker -> AccidentDetector ->
    AlertLifecycle -> EmergencyDispatcher
    """

    def __init__(self, thresholds=None, dispatcher=None, location_provider=None, cues=None,
                 transcriber=None, audio_capture=None,
                 tick_interval=TICK_INTERVAL_SECONDS, rearm_delay=REARM_DELAY_SECONDS):
        self.detector = AccidentDetector(thresholds)
        self.worker = DetectionWorker(self.detector)

        self.transcriber = transcriber
        self.keyword_listener = KeywordCancelListener(transcriber)
        self.shake_listener = ShakeCancelListener()

        self.lifecycle = AlertLifecycle(
            dispatcher=dispatcher,
            location_provider=location_provider,
            cues=cues,
            cancel_listeners=[self.keyword_listener, self.shake_listener],
            rearm=self.worker.request_rearm,
            tick_interval=tick_interval,
            rearm_delay=rearm_delay,
        )

        self.detector.alert_sink = self.lifecycle.trigger
        self.worker.add_motion_listener(self.shake_listener.feed)

        self.audio_capture = audio_capture
        if audio_capture is not None:
            audio_capture.add_listener(self.submit)
            if transcriber is not None:
                audio_capture.add_block_listener(transcriber.feed_audio)

        self.is_running = False
        logger.info("Crash monitor initialized")

    def start(self):
        if self.is_running:
            return

        self.worker.start()
        if self.audio_capture is not None:
            self.audio_capture.start()
        self.is_running = True
        logger.info("Accident detection activated")

    def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        if self.audio_capture is not None:
            self.audio_capture.stop()
        self.lifecycle.shutdown()
        self.worker.stop()
        logger.info("Accident detection deactivated")

    def submit(self, sample):
        """Hand a sample to the detection worker; never blocks"""
        self.worker.submit(sample)

    def cancel(self):
        return self.lifecycle.cancel("manual")

    def get_status(self):
        session = self.lifecycle.session
        history = self.detector.history
        return {
            "is_running": self.is_running,
            "state": self.lifecycle.state.value,
            "severity": session.severity.label if session else None,
            "countdown_remaining": session.countdown_remaining if session else None,
            "progress": session.progress if session else None,
            "processed_samples": self.worker.processed_count,
            "history_size": len(history),
            "last_event": history[-1].kind.value if history else None,
            "last_request_time": self.detector.last_request_time,
        }
