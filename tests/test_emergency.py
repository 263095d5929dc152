"""Tests for emergency dispatch and location providers."""

from unittest.mock import MagicMock

import pytest

from crashguard.emergency import (
    EmergencyDispatcher, DispatchError, LogFileChannel, ConsoleChannel, NotificationChannel
)
from crashguard.location import (
    StaticLocationProvider, CachedLocationProvider, LocationUnavailable,
    maps_url, location_string
)
from crashguard.models import Severity, Position, UNAVAILABLE_POSITION
from crashguard.config import EMERGENCY_LOG_FILE


class FailingChannel(NotificationChannel):
    name = "SMS"

    def send(self, message, emergency_number, severity, details):
        raise ConnectionError("no signal")


class TestEmergencyMessage:

    def test_message_contents(self):
        dispatcher = EmergencyDispatcher(channels=[])
        location = Position(40.7128, -74.006, 5.0)
        message = dispatcher.prepare_message(
            Severity.CRITICAL, location, {"impact_force": 9.1234, "sound_level": 104.6}
        )

        assert "Severity: CRITICAL" in message
        assert "Location: 40.712800, -74.006000" in message
        assert "https://www.google.com/maps?q=40.7128,-74.006" in message
        assert "Impact Force: 9.12g" in message
        assert "Sound Level: 105 dB" in message
        assert message.endswith("Immediate assistance required!")

    def test_message_without_location(self):
        message = EmergencyDispatcher(channels=[]).prepare_message(
            Severity.HIGH, UNAVAILABLE_POSITION, {}
        )
        assert "Location unavailable" in message
        assert "maps" not in message
        assert "Impact Force" not in message


class TestEmergencyDispatcher:

    def test_all_channels_run(self, tmp_path):
        log_file = tmp_path / "emergency.txt"
        spy = MagicMock(spec=NotificationChannel)
        spy.name = "Spy"
        dispatcher = EmergencyDispatcher("112", channels=[FailingChannel(), spy, LogFileChannel(str(log_file))])

        outcome = dispatcher.send_alert(Severity.HIGH, {"impact_force": 7.0})

        assert outcome.success
        assert outcome.notified == ["Spy", "Emergency log"]
        assert outcome.channels[0].error == "no signal"
        assert not outcome.location_available
        spy.send.assert_called_once()
        assert spy.send.call_args[0][1] == "112"
        assert "EMERGENCY (high) to 112" in log_file.read_text(encoding="utf-8")

    def test_all_channels_failing(self):
        outcome = EmergencyDispatcher(channels=[FailingChannel()]).send_alert(Severity.HIGH, {})
        assert not outcome.success

    def test_no_channels_raises(self):
        with pytest.raises(DispatchError):
            EmergencyDispatcher(channels=[]).send_alert(Severity.HIGH, {})

    def test_location_from_details(self):
        spy = MagicMock(spec=NotificationChannel)
        spy.name = "Spy"
        dispatcher = EmergencyDispatcher(channels=[spy])
        outcome = dispatcher.send_alert("critical", {"location": Position(1.0, 2.0)})

        assert outcome.location_available
        assert outcome.severity is Severity.CRITICAL
        assert "1.000000, 2.000000" in outcome.message

    def test_console_channel_prints_links(self, capsys):
        ConsoleChannel().send("EMERGENCY ALERT\nSeverity: HIGH", "+44999", Severity.HIGH, {})
        out = capsys.readouterr().out
        assert "tel:+44999" in out
        assert "sms:+44999?body=EMERGENCY%20ALERT" in out
        assert "https://wa.me/44999" in out

    def test_action_history(self):
        spy = MagicMock(spec=NotificationChannel)
        spy.name = "Spy"
        dispatcher = EmergencyDispatcher(channels=[spy])
        dispatcher.send_alert(Severity.MEDIUM, {})

        history = dispatcher.get_action_history()
        assert len(history) == 1
        assert history[0]["severity"] == "medium"

    def test_default_channels(self):
        dispatcher = EmergencyDispatcher()
        console, log_channel = dispatcher.channels

        assert isinstance(console, ConsoleChannel)
        assert isinstance(log_channel, LogFileChannel)
        assert log_channel.log_file == EMERGENCY_LOG_FILE

    def test_set_emergency_number(self):
        dispatcher = EmergencyDispatcher(channels=[])
        dispatcher.set_emergency_number(" 999 ")
        assert dispatcher.emergency_number == "999"
        with pytest.raises(ValueError):
            dispatcher.set_emergency_number("  ")


class TestLocation:

    def test_static_provider(self):
        position = StaticLocationProvider(1.5, 2.5, 3.0).get_current_position()
        assert (position.latitude, position.longitude, position.accuracy) == (1.5, 2.5, 3.0)
        assert not position.unavailable

    def test_cache_reused_while_fresh(self):
        source = MagicMock()
        source.get_current_position.return_value = Position(1.0, 2.0, timestamp=1000.0)
        now = [1000.0]
        provider = CachedLocationProvider(source, max_age=30, clock=lambda: now[0])

        provider.get_current_position()
        now[0] = 20000.0
        provider.get_current_position()
        assert source.get_current_position.call_count == 1

        now[0] = 31000.0
        provider.get_current_position()
        assert source.get_current_position.call_count == 2

    def test_last_known_position_on_failure(self):
        source = MagicMock()
        source.get_current_position.side_effect = [Position(1.0, 2.0, timestamp=0.0), OSError("gps off")]
        provider = CachedLocationProvider(source, max_age=30, clock=lambda: 60000.0)

        first = provider.get_current_position()
        assert provider.get_current_position() is first

    def test_failure_without_fix_raises(self):
        source = MagicMock()
        source.get_current_position.side_effect = OSError("denied")
        with pytest.raises(LocationUnavailable):
            CachedLocationProvider(source).get_current_position()

    def test_formatting(self):
        position = Position(10.0, 20.0)
        assert maps_url(position) == "https://www.google.com/maps?q=10.0,20.0"
        assert location_string(position) == "10.000000, 20.000000"
        assert location_string(UNAVAILABLE_POSITION) == "Location unavailable"
        assert location_string(None) == "Location unavailable"
