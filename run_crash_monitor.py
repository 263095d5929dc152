#!/usr/bin/env python3
"""
Run script for crashguard

Usage:
    python run_crash_monitor.py run                          # Live microphone monitoring
    python run_crash_monitor.py simulate --scenario crash    # Synthetic accident
    python run_crash_monitor.py replay samples.jsonl         # Replay recorded samples

Make sure to install the package first:
    pip install -e .
"""

from crashguard.main import main

if __name__ == '__main__':
    main()
