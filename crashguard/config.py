"""
Configuration constants for the crashguard accident detection system
"""

# Physics
STANDARD_GRAVITY = 9.81  # m/s^2, 1 g

# Impact thresholds (g-force)
LOW_IMPACT_G = 2.5       # minor bump
MEDIUM_IMPACT_G = 4.0    # moderate impact
HIGH_IMPACT_G = 6.0      # severe impact
CRITICAL_IMPACT_G = 8.0  # critical impact

# Sound / rotation / duration thresholds
CRASH_SOUND_LEVEL_DB = 100      # approximate dB for a crash sound
SUDDEN_ROTATION_DEG = 45        # degrees between consecutive orientation samples
SUSTAINED_FORCE_DURATION_MS = 200

# Detection engine timing (ms)
ALERT_COOLDOWN_MS = 10000           # minimum gap between accepted alert requests
AUDIO_DUPLICATE_WINDOW_MS = 5000    # loud sounds ignored this soon after a request
IMPACT_CORRELATION_WINDOW_MS = 2000 # impact must precede the crash sound by at most this
HISTORY_SIZE = 50                   # detection events kept for correlation

# Alert lifecycle
COUNTDOWN_SECONDS = {
    "low": 60,
    "medium": 30,
    "high": 20,
    "critical": 15,
}
DEFAULT_COUNTDOWN_SECONDS = 30
URGENT_COUNTDOWN_SECONDS = 10   # urgent cues while 1 <= remaining <= this
FINAL_WARNING_SECONDS = 5
TICK_INTERVAL_SECONDS = 1.0
REARM_DELAY_SECONDS = 5.0       # detection re-armed this long after a cancel

# Cancellation
CANCEL_KEYWORDS = [
    "cancel", "stop", "okay", "ok", "i'm okay",
    "i'm ok", "fine", "i'm fine", "safe", "i'm safe",
    "no emergency", "false alarm", "mistake",
]
SHAKE_THRESHOLD_G = 15.0
SHAKE_DEBOUNCE_MS = 500

# Audio capture
SAMPLE_RATE = 16000   # 16 kHz, also what whisper expects
CHANNELS = 1          # Mono
AUDIO_BLOCK_SIZE = 256  # ~62 level readings per second
DB_CALIBRATION_OFFSET = 120.0  # dBFS -> approximate dB SPL

# Speech-to-text (spoken cancellation)
WHISPER_MODEL_SIZE = "tiny"
TRANSCRIBE_CHUNK_SECONDS = 2.5
TRANSCRIBE_OVERLAP_SECONDS = 0.5

# Alert cues (Hz, seconds)
ALERT_CHIRP_FREQUENCIES = (800, 1000)
BEEP_FREQUENCY = 900
URGENT_BEEP_FREQUENCY = 1200
BEEP_INTERVAL_SECONDS = 2.0
CUE_SAMPLE_RATE = 44100
ALERT_VIBRATION_PATTERN_MS = [200, 100, 200, 100, 200]
URGENT_VIBRATION_MS = 100

# Location
LOCATION_MAX_AGE_SECONDS = 30
MAPS_URL_TEMPLATE = "https://www.google.com/maps?q={latitude},{longitude}"

# Emergency dispatch
DEFAULT_EMERGENCY_NUMBER = "911"
MANUAL_CALL_MESSAGE = "Failed to send emergency alert! Please call emergency services manually."

# Logging
EMERGENCY_LOG_FILE = "emergency_log.txt"
