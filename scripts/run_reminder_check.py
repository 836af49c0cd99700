#!/usr/bin/env python3
"""
Cron script for sending session reminders without the in-process scheduler
Run this via cron every 5 minutes: */5 * * * * /path/to/venv/bin/python /path/to/run_reminder_check.py
Set REMINDER_SCHEDULER_ENABLED=false on the web process when using it.
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from replaycoach.services.reminder_service import ReminderScheduler
from replaycoach.utils.logger import get_logger
from replaycoach.database import init_db
from datetime import datetime

logger = get_logger('reminder_cron')


def main():
    """Main cron job function"""
    logger.info(f"Starting reminder check at {datetime.utcnow()}")

    try:
        init_db()

        result = ReminderScheduler().run_scan()

        logger.info(f"Reminder check completed: {result}")

    except Exception as e:
        logger.error(f"Error in reminder check: {str(e)}")
        raise


if __name__ == "__main__":
    main()
