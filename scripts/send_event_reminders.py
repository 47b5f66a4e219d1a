"""
Send reminder notifications for active events starting soon.
Meant to run from cron, e.g. hourly:

    python scripts/send_event_reminders.py --hours 24
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import LOG_LEVEL
from constants import REMINDER_WINDOW_HOURS
from utils.logger import get_logger, setup_logging
from utils.notification_helper import send_event_reminders


def main():
    parser = argparse.ArgumentParser(description="Notify subscribers of upcoming events")
    parser.add_argument("--hours", type=int, default=REMINDER_WINDOW_HOURS, help="Look-ahead window")
    args = parser.parse_args()

    setup_logging(LOG_LEVEL)
    sent = asyncio.run(send_event_reminders(window_hours=args.hours))
    get_logger("event_hub.reminders").info(f"Sent {sent} reminder(s)")


if __name__ == "__main__":
    main()
