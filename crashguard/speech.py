"""
Speech-to-text for spoken cancellation
Buffers raw microphone blocks into overlapping chunks and transcribes them
with faster-whisper while an alert is active
"""

import logging
import threading
from queue import Queue, Empty, Full

import numpy as np

from .config import (
    SAMPLE_RATE, WHISPER_MODEL_SIZE, TRANSCRIBE_CHUNK_SECONDS,
    TRANSCRIBE_OVERLAP_SECONDS
)

logger = logging.getLogger(__name__)


class WhisperTranscriber:
    """
    Push-based transcript source. Feed it audio blocks with feed_audio();
    between start(callback) and stop() every transcribed chunk is passed
    to callback as lower-case text.
    """

    def __init__(self, model_size=WHISPER_MODEL_SIZE, sample_rate=SAMPLE_RATE,
                 chunk_seconds=TRANSCRIBE_CHUNK_SECONDS, overlap_seconds=TRANSCRIBE_OVERLAP_SECONDS):
        self.model_size = model_size
        self.sample_rate = sample_rate
        self.samples_per_chunk = int(sample_rate * chunk_seconds)
        self.overlap_samples = int(sample_rate * overlap_seconds)

        self.model = None
        self.audio_queue = Queue(maxsize=200)
        self.callback = None

        self._stop_event = threading.Event()
        self._thread = None
        self.last_text = ""

    @property
    def is_running(self):
        return self._thread is not None and not self._stop_event.is_set()

    def load_model(self):
        if self.model is None:
            from faster_whisper import WhisperModel
            self.model = WhisperModel(self.model_size, device="cpu", compute_type="int8")
            logger.info(f"Whisper '{self.model_size}' model loaded")
        return self.model

    def start(self, callback):
        self.stop()
        self.callback = callback
        self.last_text = ""
        self._drain()

        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._transcribe_loop, args=(self._stop_event,),
                                        name="whisper-transcriber", daemon=True)
        self._thread.start()

    def stop(self):
        # may run on the loop thread itself, so signal instead of joining
        self._stop_event.set()
        self._thread = None
        self.callback = None

    def feed_audio(self, block):
        """Accept a mono float32 block from the audio capture"""
        if not self.is_running:
            return
        try:
            self.audio_queue.put_nowait(np.asarray(block, dtype=np.float32).flatten())
        except Full:
            logger.debug("Transcriber queue full - dropping audio block")

    def transcribe(self, audio_chunk):
        model = self.load_model()
        segments, _ = model.transcribe(audio_chunk, language="en", beam_size=1, vad_filter=True,
                                       vad_parameters=dict(min_silence_duration_ms=300))
        return " ".join(segment.text for segment in segments).strip().lower()

    def _transcribe_loop(self, stop_event):
        try:
            self.load_model()
        except Exception as e:
            logger.warning(f"Speech recognition not available: {e}")
            return

        buffer = np.zeros((0,), dtype=np.float32)
        while not stop_event.is_set():
            try:
                block = self.audio_queue.get(timeout=0.1)
            except Empty:
                continue
            buffer = np.concatenate((buffer, block))

            if len(buffer) < self.samples_per_chunk:
                continue

            audio_chunk = buffer[:self.samples_per_chunk]
            # keep overlap
            buffer = buffer[self.samples_per_chunk - self.overlap_samples:]

            try:
                text = self.transcribe(audio_chunk)
            except Exception as e:
                logger.error(f"Transcription failed: {e}")
                continue

            # debounce duplicate text
            if not text or text == self.last_text:
                continue
            self.last_text = text
            logger.info(f"Heard: \"{text}\"")

            callback = self.callback
            if callback is not None and not stop_event.is_set():
                callback(text)

    def _drain(self):
        while True:
            try:
                self.audio_queue.get_nowait()
            except Empty:
                break
