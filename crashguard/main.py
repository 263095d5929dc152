"""
Command line interface for crashguard
Run live monitoring, synthetic scenarios, or replay recorded samples
"""

import argparse
import dataclasses
import json
import logging
import sys
import time

from .monitor import CrashMonitor
from .alert import LifecycleObserver
from .audio_capture import AudioCapture
from .cues import AlertCuePlayer
from .emergency import EmergencyDispatcher
from .location import StaticLocationProvider, CachedLocationProvider
from .models import LifecycleState, Thresholds, sample_from_record, now_ms
from .simulation import SCENARIOS
from .speech import WhisperTranscriber
from .config import DEFAULT_EMERGENCY_NUMBER, TICK_INTERVAL_SECONDS, REARM_DELAY_SECONDS

logger = logging.getLogger(__name__)


class ConsoleObserver(LifecycleObserver):
    """Prints lifecycle changes in place of alert/emergency screens"""

    def on_state_change(self, state, session):
        if state is LifecycleState.ACTIVE:
            print(f"\n*** ACCIDENT DETECTED: {session.severity.label.upper()} ***")
            print(f"    Emergency services will be contacted in {session.countdown_total}s")
            print("    Type 'ok' to cancel, 'sos' to call now\n")
        elif state is LifecycleState.CANCELLED:
            print("[*] Alert cancelled - monitoring continues\n")
        elif state is LifecycleState.ESCALATED:
            print("[!] No response - sending emergency alert")

    def on_tick(self, session):
        print(f"    {session.countdown_remaining:>3}s  [{'#' * int(session.progress * 20):<20}]")

    def on_dispatched(self, outcome):
        print(f"[!] Emergency alert sent via: {', '.join(outcome.notified)}\n")

    def on_dispatch_failed(self, severity, reason):
        print(f"\n[X] {reason}\n")


class CrashGuardApp:
    """
    Main application class for the crashguard accident detection system
    """

    def __init__(self, args):
        self.args = args
        self.monitor = None

    def build_monitor(self, live_audio=False):
        thresholds = Thresholds.from_json(self.args.thresholds) if self.args.thresholds else None

        location_provider = None
        if self.args.latitude is not None and self.args.longitude is not None:
            location_provider = CachedLocationProvider(
                StaticLocationProvider(self.args.latitude, self.args.longitude)
            )

        dispatcher = EmergencyDispatcher(emergency_number=self.args.emergency_number)

        transcriber = None
        audio_capture = None
        if live_audio:
            audio_capture = AudioCapture()
            if not self.args.no_voice:
                transcriber = WhisperTranscriber()

        self.monitor = CrashMonitor(
            thresholds=thresholds,
            dispatcher=dispatcher,
            location_provider=location_provider,
            cues=None if self.args.silent else AlertCuePlayer(),
            transcriber=transcriber,
            audio_capture=audio_capture,
            tick_interval=self.args.tick_interval,
            rearm_delay=self.args.rearm_delay,
        )
        self.monitor.lifecycle.add_observer(ConsoleObserver())
        return self.monitor

    # -------------------------------------------------------------------
    # Live monitoring
    # -------------------------------------------------------------------
    def run(self):
        monitor = self.build_monitor(live_audio=True)
        monitor.start()
        print("\n[*] Monitoring for accidents...")
        print("[*] Commands: ok (cancel), sos (call now), status, quit")
        print("[*] Motion and orientation arrive as JSON lines, e.g.")
        print('    {"type": "motion", "x": 0.1, "y": 9.7, "z": 0.3}\n')

        try:
            for line in sys.stdin:
                if not self.handle_input(line):
                    break
        except KeyboardInterrupt:
            print("\n[*] Stopping...")
        finally:
            monitor.stop()

    def handle_input(self, line):
        """
        Handle one line of live input: a console command, or a JSON sensor
        record in the replay format (timestamp defaults to now).
        Returns False when the user asked to quit.
        """
        monitor = self.monitor
        text = line.strip()
        if text.startswith("{"):
            try:
                monitor.submit(sample_from_record(json.loads(text)))
            except ValueError as e:
                logger.warning(f"Ignoring sensor record: {e}")
            return True

        command = text.lower()
        if command in ("quit", "exit", "q"):
            return False
        if command == "ok":
            if not monitor.cancel():
                print("No active alert")
        elif command == "sos":
            monitor.lifecycle.force_escalate_now()
        elif command == "status":
            print(json.dumps(monitor.get_status(), indent=2))
        return True

    # -------------------------------------------------------------------
    # Synthetic scenario / replay
    # -------------------------------------------------------------------
    def simulate(self):
        samples = SCENARIOS[self.args.scenario](seed=self.args.seed)
        print(f"[*] Simulating '{self.args.scenario}' scenario ({len(samples)} samples)")
        self._feed(samples)

    def replay(self):
        samples = []
        with open(self.args.file, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    samples.append(sample_from_record(json.loads(line)))
                except ValueError as e:
                    logger.warning(f"Skipping line {line_number}: {e}")
        samples.sort(key=lambda sample: sample.timestamp)
        print(f"[*] Replaying {len(samples)} samples from {self.args.file}")
        self._feed(samples)

    def _feed(self, samples):
        monitor = self.build_monitor(live_audio=False)
        monitor.start()

        try:
            if samples:
                # shift recorded timestamps onto the wall clock, keeping spacing
                offset = now_ms() - samples[0].timestamp
                started = time.time()
                for sample in samples:
                    due = (sample.timestamp - samples[0].timestamp) / 1000.0 / self.args.speed
                    delay = due - (time.time() - started)
                    if delay > 0:
                        time.sleep(delay)
                    monitor.submit(dataclasses.replace(sample, timestamp=sample.timestamp + offset))

            monitor.worker.wait_idle()
            while monitor.lifecycle.state is not LifecycleState.IDLE:
                time.sleep(0.1)
        except KeyboardInterrupt:
            print("\n[*] Stopping...")
        finally:
            print(json.dumps(monitor.get_status(), indent=2))
            monitor.stop()


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------
def build_parser():
    parser = argparse.ArgumentParser(
        description="crashguard - accident detection with cancellable emergency escalation"
    )
    parser.add_argument("--thresholds", help="JSON file overriding detection thresholds")
    parser.add_argument("--emergency-number", default=DEFAULT_EMERGENCY_NUMBER,
                        help=f"Number to alert (default: {DEFAULT_EMERGENCY_NUMBER})")
    parser.add_argument("--latitude", type=float, help="Fixed latitude reported on escalation")
    parser.add_argument("--longitude", type=float, help="Fixed longitude reported on escalation")
    parser.add_argument("--tick-interval", type=float, default=TICK_INTERVAL_SECONDS,
                        help="Seconds per countdown step (default: 1.0)")
    parser.add_argument("--rearm-delay", type=float, default=REARM_DELAY_SECONDS,
                        help="Seconds before detection re-arms after a cancel (default: 5.0)")
    parser.add_argument("--silent", action="store_true", help="Do not play alert sounds")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Monitor live: microphone audio plus motion/orientation JSON lines on stdin"
    )
    run_parser.add_argument("--no-voice", action="store_true",
                            help="Disable spoken cancellation (skips loading whisper)")

    simulate_parser = subparsers.add_parser("simulate", help="Run a synthetic scenario")
    simulate_parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="crash")
    simulate_parser.add_argument("--seed", type=int, default=None)
    simulate_parser.add_argument("--speed", type=float, default=1.0, help="Playback speed factor")

    replay_parser = subparsers.add_parser("replay", help="Replay samples from a JSON-lines file")
    replay_parser.add_argument("file")
    replay_parser.add_argument("--speed", type=float, default=1.0, help="Playback speed factor")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = CrashGuardApp(args)

    try:
        if args.command == "run":
            app.run()
        elif args.command == "simulate":
            app.simulate()
        elif args.command == "replay":
            app.replay()
    except (OSError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
