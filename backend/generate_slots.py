"""
Create appointment slots for the coming working days.

Safe to run repeatedly (e.g. daily from cron): existing slots are kept.

Usage:
    python generate_slots.py            # next BOOKING_DAYS_ADVANCE days
    python generate_slots.py --days 60
"""
import argparse
from datetime import date, timedelta

from mcs_booking.lib.db import build_engine, build_session_factory, session_scope
from mcs_booking.lib.settings import settings
from mcs_booking.services.schedule_service import generate_slots


def main():
    parser = argparse.ArgumentParser(description="Generate appointment slots")
    parser.add_argument("--days", type=int, default=settings.booking_days_advance, help="Number of days to cover")
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="First day (YYYY-MM-DD, default: tomorrow)")
    args = parser.parse_args()

    start = args.start or date.today() + timedelta(days=1)
    engine = build_engine(config=settings)

    with session_scope(build_session_factory(engine)) as db:
        created = generate_slots(db, start=start, days=args.days, config=settings)

    print(f"Created {created} slots from {start.isoformat()} over {args.days} days")


if __name__ == "__main__":
    main()
