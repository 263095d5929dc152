"""
Single-writer detection worker
Sensor producers hand samples over through a thread-safe queue; one
background thread owns the AccidentDetector and classifies every sample
"""

import logging
import threading
from queue import Queue, Empty

from .models import MotionSample, OrientationSample, AudioSample

logger = logging.getLogger(__name__)

_REARM = object()


class DetectionWorker:
    """
    Runs an AccidentDetector on its own thread.
    submit() never blocks and never drops: every sample is classified.
    """

    def __init__(self, detector):
        self.detector = detector

        # Unbounded on purpose: classification input must not be decimated
        self.sample_queue = Queue()
        self.motion_listeners = []

        self.is_running = False
        self.worker_thread = None
        self.processed_count = 0

    def add_motion_listener(self, callback):
        """callback(MotionSample) before the detector sees the sample"""
        self.motion_listeners.append(callback)

    def start(self):
        if self.is_running:
            logger.warning("Detection worker already running")
            return

        self.is_running = True
        self.worker_thread = threading.Thread(target=self._run_loop, name="detection-worker", daemon=True)
        self.worker_thread.start()
        logger.info("Detection worker started")

    def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        if self.worker_thread and self.worker_thread.is_alive():
            self.worker_thread.join(timeout=2.0)
        logger.info("Detection worker stopped")

    def submit(self, sample):
        self.sample_queue.put(sample)

    def request_rearm(self):
        """Clear the detector's cooldown from the owning thread"""
        self.sample_queue.put(_REARM)

    def wait_idle(self):
        """Block until everything submitted so far has been processed"""
        self.sample_queue.join()

    def _run_loop(self):
        while self.is_running:
            try:
                item = self.sample_queue.get(timeout=0.1)
            except Empty:
                continue

            try:
                self.handle(item)
            except Exception as e:
                logger.error(f"Failed to process {type(item).__name__}: {e}")
            finally:
                self.sample_queue.task_done()

    def handle(self, item):
        """Route one queued item to the detector"""
        if item is _REARM:
            self.detector.rearm()
            return

        if isinstance(item, MotionSample):
            # listeners first: an alert raised by this sample must not see it as a gesture
            for callback in list(self.motion_listeners):
                callback(item)
            self.detector.process_motion(item)
        elif isinstance(item, OrientationSample):
            self.detector.process_orientation(item)
        elif isinstance(item, AudioSample):
            self.detector.process_audio(item)
        else:
            logger.warning(f"Ignoring unknown sample type: {type(item).__name__}")
            return

        self.processed_count += 1
