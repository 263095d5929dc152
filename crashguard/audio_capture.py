"""
Audio capture module for crashguard
Turns the microphone stream into approximate loudness readings for crash
sound detection and forwards raw blocks to the speech transcriber
"""

import logging
import threading
import time

import numpy as np
import librosa

from .models import AudioSample
from .config import SAMPLE_RATE, CHANNELS, AUDIO_BLOCK_SIZE, DB_CALIBRATION_OFFSET

logger = logging.getLogger(__name__)


def compute_level_db(block, offset=DB_CALIBRATION_OFFSET):
    """
    Approximate sound level of one audio block

    RMS loudness in dBFS shifted by a calibration offset so that ordinary
    speech lands around 60-80 and a full-scale bang above 100. Never negative.

    Args:
        block: mono float samples in [-1, 1]

    Returns:
        float: level in approximate dB
    """
    audio = np.asarray(block, dtype=np.float32).flatten()
    if audio.size == 0:
        return 0.0

    rms = librosa.feature.rms(y=audio, frame_length=audio.size, hop_length=audio.size, center=False)
    dbfs = librosa.amplitude_to_db(rms, ref=1.0, amin=1e-10, top_db=None)
    return max(0.0, float(np.max(dbfs)) + offset)


class AudioCapture:
    """
    Continuous microphone capture on a background thread.
    Listeners receive an AudioSample per block; block listeners receive the
    raw mono block.
    """

    def __init__(self, sample_rate=SAMPLE_RATE, block_size=AUDIO_BLOCK_SIZE):
        self.sample_rate = sample_rate
        self.channels = CHANNELS
        self.block_size = block_size

        self.listeners = []
        self.block_listeners = []

        # Control flags
        self.is_running = False
        self.stream = None
        self.capture_thread = None

        self.current_level = 0.0
        self.peak_level = 0.0

    def add_listener(self, callback):
        self.listeners.append(callback)

    def add_block_listener(self, callback):
        self.block_listeners.append(callback)

    def audio_callback(self, indata, frames, time_info, status):
        """
        Callback function for audio stream - runs in separate thread
        """
        if status:
            logger.debug(f"Audio stream status: {status}")

        # Convert to mono if needed and flatten
        if self.channels == 1:
            audio_data = indata.flatten()
        else:
            audio_data = np.mean(indata, axis=1)

        self.process_block(audio_data, timestamp=time.time() * 1000.0)

    def process_block(self, audio_data, timestamp):
        level = compute_level_db(audio_data)
        self.current_level = level
        self.peak_level = max(self.peak_level, level)

        sample = AudioSample(timestamp, level)
        for callback in self.listeners:
            callback(sample)
        for callback in self.block_listeners:
            callback(audio_data)
        return sample

    def _capture_loop(self):
        """
        Main capture loop - runs in background thread
        """
        try:
            import sounddevice as sd
            with sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype=np.float32,
                callback=self.audio_callback,
                blocksize=self.block_size
            ) as stream:
                self.stream = stream
                logger.info("Microphone monitoring ACTIVE")
                while self.is_running:
                    time.sleep(0.01)  # Small sleep to prevent busy waiting

        except Exception as e:
            logger.error(f"Microphone access failed: {e}")
        finally:
            self.stream = None
            logger.info("Audio capture stopped")

    def start(self):
        """
        Start audio capture in background thread
        """
        if self.is_running:
            logger.warning("Microphone monitoring already active")
            return

        self.is_running = True
        self.capture_thread = threading.Thread(target=self._capture_loop, name="audio-capture", daemon=True)
        self.capture_thread.start()

    def stop(self):
        """
        Stop audio capture gracefully
        """
        if not self.is_running:
            return

        self.is_running = False

        if self.capture_thread and self.capture_thread.is_alive():
            self.capture_thread.join(timeout=1.0)

    def reset_peak(self):
        self.peak_level = 0.0
