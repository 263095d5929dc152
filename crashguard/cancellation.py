"""
Cancellation listeners for an active alert: spoken keyword and shake gesture.
Manual cancellation goes straight to AlertLifecycle.cancel().
"""

import logging
import threading

from .config import CANCEL_KEYWORDS, SHAKE_THRESHOLD_G, SHAKE_DEBOUNCE_MS

logger = logging.getLogger(__name__)


def match_cancel_keyword(transcript, keywords=CANCEL_KEYWORDS):
    """Return the first cancel keyword contained in the transcript, or None"""
    if not transcript:
        return None
    text = transcript.lower()
    for keyword in keywords:
        if keyword in text:
            return keyword
    return None


class CancelListener:
    """Base class: arm(on_cancel) while an alert is active, disarm() afterwards"""

    name = "listener"

    def __init__(self):
        self._lock = threading.Lock()
        self._on_cancel = None

    @property
    def armed(self):
        return self._on_cancel is not None

    def arm(self, on_cancel):
        with self._lock:
            self._on_cancel = on_cancel

    def disarm(self):
        with self._lock:
            self._on_cancel = None

    def _fire(self, source):
        with self._lock:
            on_cancel = self._on_cancel
        if on_cancel is not None:
            on_cancel(source)


class KeywordCancelListener(CancelListener):
    """
    Matches live transcripts against the cancel phrase set.
    Transcripts come either from a transcriber (started while armed) or
    from feed() for push-based sources.
    """

    name = "keyword"

    def __init__(self, transcriber=None, keywords=CANCEL_KEYWORDS):
        super().__init__()
        self.transcriber = transcriber
        self.keywords = keywords

    def arm(self, on_cancel):
        super().arm(on_cancel)
        if self.transcriber is None:
            return
        try:
            self.transcriber.start(self.feed)
            logger.info("Voice recognition activated")
        except Exception as e:
            logger.warning(f"Could not start voice recognition: {e}")

    def disarm(self):
        super().disarm()
        if self.transcriber is not None:
            try:
                self.transcriber.stop()
            except Exception as e:
                logger.warning(f"Error stopping voice recognition: {e}")

    def feed(self, transcript):
        if not self.armed:
            return None
        keyword = match_cancel_keyword(transcript, self.keywords)
        if keyword is not None:
            logger.info(f'Voice command detected: "{transcript}"')
            self._fire(f"keyword:{keyword}")
        return keyword


class ShakeCancelListener(CancelListener):
    """
    Treats a motion sample above threshold_g as a shake. Shakes closer
    than debounce_ms to the previous one are coalesced.

    Feed it every motion sample, armed or not. Samples stamped at or before
    the last one seen when arming are ignored, and a strong impact still in
    progress at that moment counts as the previous shake, so the crash that
    raised the alert can never cancel it.
    """

    name = "shake"

    def __init__(self, threshold_g=SHAKE_THRESHOLD_G, debounce_ms=SHAKE_DEBOUNCE_MS):
        super().__init__()
        self.threshold_g = threshold_g
        self.debounce_ms = debounce_ms
        self.last_shake_time = None
        self.last_seen_time = None
        self.last_strong_time = None
        self.armed_after = None

    def arm(self, on_cancel):
        self.armed_after = self.last_seen_time
        self.last_shake_time = self.last_strong_time
        self.last_strong_time = None
        super().arm(on_cancel)

    def feed(self, sample):
        now = sample.timestamp
        strong = sample.impact_force > self.threshold_g

        if not self.armed:
            self._observe(now, strong)
            return False
        if self.armed_after is not None and now <= self.armed_after:
            return False
        self._observe(now, False)
        if not strong:
            return False

        if self.last_shake_time is not None and now - self.last_shake_time <= self.debounce_ms:
            self.last_shake_time = now
            return False

        self.last_shake_time = now
        logger.info(f"Shake gesture detected ({sample.impact_force:.1f} g)")
        self._fire("shake")
        return True

    def _observe(self, timestamp, strong):
        if self.last_seen_time is None or timestamp > self.last_seen_time:
            self.last_seen_time = timestamp
        # only impacts seen while disarmed can be the crash behind the next alert
        if strong:
            self.last_strong_time = timestamp
