"""Tests for audio level capture, alert cues and the speech transcriber."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from crashguard.audio_capture import AudioCapture, compute_level_db
from crashguard.cues import AlertCuePlayer, synthesize_tone
from crashguard.models import AudioSample
from crashguard.speech import WhisperTranscriber


class TestLevelComputation:

    def test_silence_is_zero(self):
        assert compute_level_db(np.zeros(256, dtype=np.float32)) == 0.0

    def test_empty_block_is_zero(self):
        assert compute_level_db(np.array([], dtype=np.float32)) == 0.0

    def test_full_scale_sine_is_crash_loud(self, sine_block):
        level = compute_level_db(sine_block)
        assert level == pytest.approx(117.0, abs=0.5)
        assert level >= 100

    def test_quiet_sine_below_crash_level(self, sine_block):
        level = compute_level_db(sine_block * 0.01)
        assert level == pytest.approx(77.0, abs=0.5)

    def test_louder_is_higher(self, sine_block):
        assert compute_level_db(sine_block * 0.5) < compute_level_db(sine_block)


class TestAudioCapture:

    def test_process_block_emits_sample_and_block(self, sine_block):
        capture = AudioCapture()
        samples, blocks = [], []
        capture.add_listener(samples.append)
        capture.add_block_listener(blocks.append)

        sample = capture.process_block(sine_block, timestamp=1234.0)

        assert isinstance(sample, AudioSample)
        assert samples == [sample]
        assert sample.timestamp == 1234.0
        assert blocks[0] is sine_block
        assert capture.peak_level == sample.level_db

    def test_callback_flattens_input(self, sine_block):
        capture = AudioCapture()
        samples = []
        capture.add_listener(samples.append)
        capture.audio_callback(sine_block.reshape(-1, 1), len(sine_block), None, None)

        assert len(samples) == 1
        assert samples[0].level_db > 100

    def test_reset_peak(self, sine_block):
        capture = AudioCapture()
        capture.process_block(sine_block, timestamp=0.0)
        capture.reset_peak()
        assert capture.peak_level == 0.0


class TestAlertCues:

    @pytest.mark.parametrize("waveform", ["sine", "square", "sawtooth"])
    def test_tone_shape(self, waveform):
        tone = synthesize_tone(900, 0.2, waveform=waveform, volume=0.4, sample_rate=8000)
        assert tone.dtype == np.float32
        assert len(tone) == 1600
        assert np.max(np.abs(tone)) <= 0.4 + 1e-6

    def test_urgent_plays_and_vibrates(self):
        haptic = MagicMock()
        player = AlertCuePlayer(haptic=haptic)
        with patch.object(player, "_play") as play:
            player.urgent()

        play.assert_called_once()
        haptic.assert_called_once_with([100])

    def test_start_and_stop_beeping(self):
        haptic = MagicMock()
        player = AlertCuePlayer(haptic=haptic, beep_interval=0.01)
        with patch.object(player, "_play") as play:
            player.start()
            player.stop()

        haptic.assert_called_once_with([200, 100, 200, 100, 200])
        assert play.call_count >= 1
        assert player._beep_thread is None

    def test_haptic_failure_is_swallowed(self):
        player = AlertCuePlayer(haptic=MagicMock(side_effect=OSError("no motor")))
        player.vibrate([100])


class TestWhisperTranscriber:

    def test_feed_ignored_until_started(self):
        transcriber = WhisperTranscriber()
        transcriber.feed_audio(np.zeros(256))
        assert transcriber.audio_queue.empty()

    def test_transcribe_joins_segments(self):
        transcriber = WhisperTranscriber()
        model = MagicMock()
        model.transcribe.return_value = ([MagicMock(text=" I'm"), MagicMock(text="OK ")], None)
        transcriber.model = model

        assert transcriber.transcribe(np.zeros(16000, dtype=np.float32)) == "i'm ok"

    def test_chunks_transcribed_and_pushed(self):
        transcriber = WhisperTranscriber(sample_rate=100, chunk_seconds=1.0, overlap_seconds=0.5)
        model = MagicMock()
        model.transcribe.return_value = ([MagicMock(text="Cancel")], None)
        transcriber.model = model

        heard = []
        transcriber.start(heard.append)
        for _ in range(4):
            transcriber.feed_audio(np.zeros(25, dtype=np.float32))

        import time
        deadline = time.time() + 2.0
        while not heard and time.time() < deadline:
            time.sleep(0.01)
        transcriber.stop()

        assert heard == ["cancel"]
        chunk = model.transcribe.call_args[0][0]
        assert len(chunk) == 100
