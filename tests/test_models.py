"""Tests for samples, severities and thresholds."""

import json

import pytest

from crashguard.models import (
    MotionSample, OrientationSample, AudioSample, Severity, Thresholds,
    AlertSession, sample_from_record
)


class TestSamples:

    def test_impact_force_is_norm_over_gravity(self):
        sample = MotionSample(0, 3.0, 4.0, 0.0)
        assert sample.impact_force == pytest.approx(5.0 / 9.81)
        assert sample.acceleration == {"x": 3.0, "y": 4.0, "z": 0.0}

    @pytest.mark.parametrize("bad", [None, float("nan"), float("inf"), "abc", object()])
    def test_bad_axis_defaults_to_zero(self, bad):
        sample = MotionSample(10, bad, 9.81, bad)
        assert sample.x == 0.0 and sample.z == 0.0
        assert sample.impact_force == pytest.approx(1.0)

    def test_numeric_strings_accepted(self):
        assert OrientationSample(0, "12.5", "-3", None).alpha == 12.5

    def test_missing_timestamp_uses_wall_clock(self):
        sample = AudioSample(None, 50)
        assert sample.timestamp > 1e12

    def test_audio_level_never_negative(self):
        assert AudioSample(0, -20).level_db == 0.0
        assert AudioSample(0, None).level_db == 0.0


class TestSeverity:

    def test_ordering(self):
        assert Severity.NONE < Severity.LOW < Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL

    @pytest.mark.parametrize("before,after", [
        (Severity.NONE, Severity.NONE),
        (Severity.LOW, Severity.MEDIUM),
        (Severity.MEDIUM, Severity.HIGH),
        (Severity.HIGH, Severity.HIGH),
        (Severity.CRITICAL, Severity.CRITICAL),
    ])
    def test_upgraded(self, before, after):
        assert before.upgraded() is after

    def test_parse(self):
        assert Severity.parse(" Critical ") is Severity.CRITICAL
        assert Severity.parse(Severity.LOW) is Severity.LOW
        with pytest.raises(ValueError):
            Severity.parse("catastrophic")


class TestThresholds:

    def test_defaults(self):
        t = Thresholds()
        assert (t.low, t.medium, t.high, t.critical) == (2.5, 4.0, 6.0, 8.0)
        assert t.crash_sound_level == 100
        assert t.sudden_rotation == 45
        assert t.sustained_force_duration == 200

    @pytest.mark.parametrize("values", [
        {"low": 4.0},
        {"medium": 6.0},
        {"critical": 5.0},
    ])
    def test_order_enforced(self, values):
        with pytest.raises(ValueError):
            Thresholds(**values)

    def test_from_json(self, tmp_path):
        path = tmp_path / "thresholds.json"
        path.write_text(json.dumps({"low": 2.0, "crash_sound_level": 95}), encoding="utf-8")

        t = Thresholds.from_json(str(path))
        assert t.low == 2.0
        assert t.crash_sound_level == 95
        assert t.high == 6.0

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="lowImpact"):
            Thresholds.from_mapping({"lowImpact": 2.0})


class TestAlertSession:

    def test_progress_clamped(self):
        session = AlertSession(1, Severity.HIGH, {}, countdown_total=20, countdown_remaining=5)
        assert session.progress == 0.25
        session.countdown_remaining = -1
        assert session.progress == 0.0


class TestSampleFromRecord:

    def test_motion_record(self):
        sample = sample_from_record({"type": "motion", "timestamp": 5, "x": 1, "y": 2})
        assert isinstance(sample, MotionSample)
        assert (sample.x, sample.y, sample.z) == (1.0, 2.0, 0.0)

    def test_orientation_record(self):
        sample = sample_from_record({"type": "orientation", "timestamp": 5, "beta": 30})
        assert isinstance(sample, OrientationSample)
        assert sample.beta == 30.0

    def test_audio_record_accepts_level_alias(self):
        sample = sample_from_record({"type": "audio", "timestamp": 5, "level": 101})
        assert sample.level_db == 101.0

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            sample_from_record({"type": "pressure"})
