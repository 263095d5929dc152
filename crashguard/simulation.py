"""
Synthetic sensor scenarios for demos and end-to-end checks.
Each scenario returns a time-ordered list of samples starting at start_ms.
"""

import numpy as np

from .models import MotionSample, OrientationSample, AudioSample
from .config import STANDARD_GRAVITY


def _calm_motion(rng, start_ms, duration_ms, rate_hz):
    """Phone lying still: ~1 g on z with a little sensor noise"""
    step = 1000.0 / rate_hz
    times = start_ms + np.arange(0.0, duration_ms, step)
    noise = rng.normal(0.0, 0.15, size=(len(times), 3))
    return [
        MotionSample(t, nx, ny, STANDARD_GRAVITY + nz)
        for t, (nx, ny, nz) in zip(times, noise)
    ]


def _impact(start_ms, duration_ms, g_force, rate_hz):
    step = 1000.0 / rate_hz
    times = start_ms + np.arange(0.0, duration_ms, step)
    magnitude = g_force * STANDARD_GRAVITY
    # split the force over the axes; the norm stays at g_force
    x, y, z = magnitude * np.array([0.6, 0.64, 0.48])
    return [MotionSample(t, x, y, z) for t in times]


def _audio(start_ms, duration_ms, level_db, rate_hz=60):
    step = 1000.0 / rate_hz
    return [AudioSample(t, level_db) for t in start_ms + np.arange(0.0, duration_ms, step)]


def crash_scenario(start_ms=0.0, rate_hz=50, seed=None):
    """Calm driving, a 9 g impact with a loud bang and a rollover"""
    rng = np.random.default_rng(seed)
    samples = _calm_motion(rng, start_ms, 1000, rate_hz)
    samples += _impact(start_ms + 1000, 300, 9.0, rate_hz)
    samples += _calm_motion(rng, start_ms + 1300, 2000, rate_hz)
    samples += _audio(start_ms, 1500, 55.0)
    samples += _audio(start_ms + 1500, 200, 108.0)
    samples += [
        OrientationSample(start_ms + 1000, 10.0, 5.0, 0.0),
        OrientationSample(start_ms + 1100, 40.0, 95.0, 60.0),
    ]
    return sorted(samples, key=lambda sample: sample.timestamp)


def bump_scenario(start_ms=0.0, rate_hz=50, seed=None):
    """Pothole: a short low-severity jolt, never alerts"""
    rng = np.random.default_rng(seed)
    samples = _calm_motion(rng, start_ms, 500, rate_hz)
    samples += _impact(start_ms + 500, 100, 3.0, rate_hz)
    samples += _calm_motion(rng, start_ms + 600, 1000, rate_hz)
    return sorted(samples, key=lambda sample: sample.timestamp)


def moderate_crash_scenario(start_ms=0.0, rate_hz=50, seed=None):
    """5 g impact, medium severity"""
    rng = np.random.default_rng(seed)
    samples = _calm_motion(rng, start_ms, 500, rate_hz)
    samples += _impact(start_ms + 500, 100, 5.0, rate_hz)
    samples += _calm_motion(rng, start_ms + 600, 1000, rate_hz)
    return sorted(samples, key=lambda sample: sample.timestamp)


def loud_noise_scenario(start_ms=0.0, rate_hz=50, seed=None):
    """Slammed door: loud audio without any impact, never alerts"""
    rng = np.random.default_rng(seed)
    samples = _calm_motion(rng, start_ms, 1500, rate_hz)
    samples += _audio(start_ms + 500, 300, 110.0)
    return sorted(samples, key=lambda sample: sample.timestamp)


def drop_scenario(start_ms=0.0, rate_hz=50, seed=None):
    """Phone flipped over on a table: rotation only, recorded but never alerts"""
    rng = np.random.default_rng(seed)
    samples = _calm_motion(rng, start_ms, 1000, rate_hz)
    samples += [
        OrientationSample(start_ms + 200, 0.0, 0.0, 0.0),
        OrientationSample(start_ms + 300, 20.0, 170.0, 5.0),
    ]
    return sorted(samples, key=lambda sample: sample.timestamp)


def shake_cancel_scenario(start_ms=0.0, rate_hz=50, seed=None):
    """A crash followed three seconds later by a vigorous shake to cancel"""
    samples = crash_scenario(start_ms, rate_hz, seed)
    samples += _impact(start_ms + 4300, 100, 17.0, rate_hz)
    return sorted(samples, key=lambda sample: sample.timestamp)


SCENARIOS = {
    "crash": crash_scenario,
    "moderate": moderate_crash_scenario,
    "bump": bump_scenario,
    "loud-noise": loud_noise_scenario,
    "drop": drop_scenario,
    "shake-cancel": shake_cancel_scenario,
}
