"""
Emergency dispatch
Builds the emergency message and hands it to the configured notification
channels. Actual SMS/call delivery belongs to the channels.
"""

import datetime
import logging
from urllib.parse import quote

from .models import Severity, ChannelResult, DispatchOutcome, UNAVAILABLE_POSITION
from .location import maps_url, location_string
from .config import DEFAULT_EMERGENCY_NUMBER, EMERGENCY_LOG_FILE

logger = logging.getLogger(__name__)


class DispatchError(RuntimeError):
    pass


class NotificationChannel:
    name = "channel"

    def send(self, message, emergency_number, severity, details):
        raise NotImplementedError


class ConsoleChannel(NotificationChannel):
    """
    Prints the alert together with the SMS, call and WhatsApp links a
    phone would open. Stand-in for real delivery during development.
    """

    name = "Console"

    def send(self, message, emergency_number, severity, details):
        body = quote(message)
        print(f"\n*** EMERGENCY ALERT: {severity.label.upper()} ***\n")
        print(message)
        print(f"\n   -> SMS:      sms:{emergency_number}?body={body}")
        print(f"   -> Call:     tel:{emergency_number}")
        print(f"   -> WhatsApp: https://wa.me/{emergency_number.lstrip('+')}?text={body}\n")


class LogFileChannel(NotificationChannel):
    """Appends each alert to a plain-text emergency log"""

    name = "Emergency log"

    def __init__(self, log_file=EMERGENCY_LOG_FILE):
        self.log_file = log_file

    def send(self, message, emergency_number, severity, details):
        timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        flat = message.replace("\n", " | ")
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] EMERGENCY ({severity.label}) to {emergency_number}: {flat}\n")


class EmergencyDispatcher:
    """
    Sends an escalated alert through every channel and reports per-channel
    results. A channel failure never stops the remaining channels.
    """

    def __init__(self, emergency_number=DEFAULT_EMERGENCY_NUMBER, channels=None):
        self.emergency_number = emergency_number
        self.channels = list(channels) if channels is not None else [ConsoleChannel(), LogFileChannel()]
        self.action_log = []

    def set_emergency_number(self, number):
        number = str(number).strip()
        if not number:
            raise ValueError("Emergency number must not be empty")
        self.emergency_number = number
        logger.info(f"Emergency number set to: {number}")

    def prepare_message(self, severity, location, details):
        timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        lines = [
            "EMERGENCY ALERT",
            "",
            f"Severity: {severity.label.upper()}",
            f"Time: {timestamp}",
            f"Location: {location_string(location)}",
        ]
        if not location.unavailable:
            lines.append(f"Map: {maps_url(location)}")
        lines.append("")

        if details.get("impact_force"):
            lines.append(f"Impact Force: {details['impact_force']:.2f}g")
        if details.get("sound_level"):
            lines.append(f"Sound Level: {details['sound_level']:.0f} dB")

        lines.append("")
        lines.append("Immediate assistance required!")
        return "\n".join(lines)

    def send_alert(self, severity, details):
        if not self.channels:
            raise DispatchError("No notification channels configured")

        severity = Severity.parse(severity)
        location = details.get("location") or UNAVAILABLE_POSITION
        message = self.prepare_message(severity, location, details)

        outcome = DispatchOutcome(severity=severity, message=message,
                                  location_available=not location.unavailable)
        for channel in self.channels:
            try:
                channel.send(message, self.emergency_number, severity, details)
                outcome.channels.append(ChannelResult(channel.name, True))
                logger.info(f"Emergency notification sent via {channel.name}")
            except Exception as e:
                outcome.channels.append(ChannelResult(channel.name, False, str(e)))
                logger.error(f"{channel.name} notification failed: {e}")

        self.action_log.append({
            "timestamp": datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            "severity": severity.label,
            "emergency_number": self.emergency_number,
            "notified": outcome.notified,
        })

        if outcome.success:
            logger.critical("EMERGENCY ALERT SENT")
        return outcome

    def get_action_history(self):
        return self.action_log.copy()
