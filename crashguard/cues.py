"""
Audible and haptic cues played while an alert counts down
"""

import logging
import threading

import numpy as np

from .config import (
    ALERT_CHIRP_FREQUENCIES, BEEP_FREQUENCY, URGENT_BEEP_FREQUENCY,
    BEEP_INTERVAL_SECONDS, CUE_SAMPLE_RATE, ALERT_VIBRATION_PATTERN_MS,
    URGENT_VIBRATION_MS
)

logger = logging.getLogger(__name__)


def synthesize_tone(frequency, duration, waveform="sine", volume=0.3, sample_rate=CUE_SAMPLE_RATE):
    """
    Build a mono float32 tone with a short attack and exponential decay

    Args:
        frequency: tone frequency in Hz
        duration: length in seconds
        waveform: "sine", "square" or "sawtooth"
        volume: peak amplitude in [0, 1]
    """
    t = np.arange(int(sample_rate * duration)) / sample_rate
    phase = frequency * t

    if waveform == "square":
        wave = np.sign(np.sin(2 * np.pi * phase))
    elif waveform == "sawtooth":
        wave = 2.0 * (phase - np.floor(phase + 0.5))
    else:
        wave = np.sin(2 * np.pi * phase)

    attack = max(1, int(sample_rate * 0.01))
    envelope = np.exp(-4.0 * t / max(duration, 1e-6))
    envelope[:attack] *= np.linspace(0.0, 1.0, attack)

    return (volume * wave * envelope).astype(np.float32)


class AlertCuePlayer:
    """
    Plays the alert chirp, a beep every BEEP_INTERVAL_SECONDS while active,
    and urgent beeps on request. Vibration patterns go to `haptic`, a
    callable taking a list of millisecond durations.
    """

    def __init__(self, haptic=None, beep_interval=BEEP_INTERVAL_SECONDS):
        self.haptic = haptic
        self.beep_interval = beep_interval

        self._stop_event = threading.Event()
        self._beep_thread = None

    def start(self):
        """Initial chirp, vibration and continuous beeping"""
        self.stop()
        self._stop_event = threading.Event()

        first, second = ALERT_CHIRP_FREQUENCIES
        chirp = np.concatenate([
            synthesize_tone(first, 0.2),
            np.zeros(int(CUE_SAMPLE_RATE * 0.1), dtype=np.float32),
            synthesize_tone(second, 0.2),
        ])
        self._play(chirp)
        self.vibrate(ALERT_VIBRATION_PATTERN_MS)

        self._beep_thread = threading.Thread(target=self._beep_loop, args=(self._stop_event,),
                                             name="alert-beeps", daemon=True)
        self._beep_thread.start()

    def urgent(self):
        self._play(synthesize_tone(URGENT_BEEP_FREQUENCY, 0.2, waveform="sawtooth", volume=0.5))
        self.vibrate([URGENT_VIBRATION_MS])

    def stop(self):
        self._stop_event.set()
        thread = self._beep_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._beep_thread = None

    def vibrate(self, pattern):
        if self.haptic is None:
            logger.debug(f"Vibration pattern {pattern} (no haptic device)")
            return
        try:
            self.haptic(list(pattern))
        except Exception as e:
            logger.warning(f"Could not vibrate device: {e}")

    def _beep_loop(self, stop_event):
        while not stop_event.is_set():
            self._play(synthesize_tone(BEEP_FREQUENCY, 0.3, waveform="square", volume=0.4))
            stop_event.wait(self.beep_interval)

    def _play(self, tone):
        try:
            import sounddevice as sd
            sd.play(tone, samplerate=CUE_SAMPLE_RATE)
        except Exception as e:
            logger.warning(f"Could not play alert sound: {e}")
