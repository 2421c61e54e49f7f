"""
Create the database tables and seed the default service catalog.

Usage:
    python init_db.py
"""
from mcs_booking.lib.db import build_engine, build_session_factory, init_db, session_scope
from mcs_booking.lib.settings import settings
from mcs_booking.services.schedule_service import generate_slots, seed_services


def main():
    print(f"Initializing database: {settings.database_url}")
    engine = build_engine(config=settings)
    init_db(engine)
    print("Tables created")

    with session_scope(build_session_factory(engine)) as db:
        services_created = seed_services(db)
        slots_created = generate_slots(db, config=settings)

    if services_created:
        print(f"Seeded {services_created} services")
    else:
        print("Services already present")
    print(f"Created {slots_created} slots for the next {settings.booking_days_advance} days")


if __name__ == "__main__":
    main()
