"""
Schedule generation and catalog seeding.

Both operations are idempotent: existing slots and services are left
untouched, so the scripts can run repeatedly (e.g. from cron).
"""
from dataclasses import dataclass
from datetime import date, time, timedelta
from decimal import Decimal
from typing import List, Optional, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mcs_booking.lib.logging import get_logger
from mcs_booking.lib.settings import Settings, settings as default_settings
from mcs_booking.models.services import Service
from mcs_booking.models.slots import Slot, SlotStatus


logger = get_logger(__name__)


@dataclass(frozen=True)
class ServiceSeed:
    name: str
    description: str
    price: Decimal
    duration_minutes: int


DEFAULT_SERVICES: List[ServiceSeed] = [
    ServiceSeed("Fahrzeugwäsche Außen", "Gründliche Außenreinigung mit Hochdruckreiniger und Spezialshampoo", Decimal("25.00"), 30),
    ServiceSeed("Fahrzeugwäsche Komplett", "Komplette Außen- und Innenreinigung für perfekte Sauberkeit", Decimal("45.00"), 60),
    ServiceSeed("Innenraumreinigung", "Gründliche Reinigung des kompletten Innenraums", Decimal("35.00"), 45),
    ServiceSeed("Polsterreinigung", "Professionelle Tiefenreinigung der Sitze und Polster", Decimal("40.00"), 60),
    ServiceSeed("Motorwäsche", "Schonende Motorraumreinigung mit Spezialreinigern", Decimal("30.00"), 30),
    ServiceSeed("Felgenreinigung", "Intensive Reinigung und Pflege von Felgen und Reifen", Decimal("20.00"), 30),
    ServiceSeed("Lackpolitur", "Professionelle Politur für strahlenden Glanz", Decimal("50.00"), 90),
    ServiceSeed("Lackversiegelung Premium", "Langzeitschutz mit Nano-Versiegelung", Decimal("80.00"), 120),
    ServiceSeed("Scheibenreinigung Spezial", "Kristallklare Scheiben innen und außen", Decimal("15.00"), 20),
    ServiceSeed("Geruchsneutralisation", "Beseitigung unangenehmer Gerüche mit Ozon", Decimal("35.00"), 45),
]


def working_slot_times(config: Settings) -> List[time]:
    """Full-hour start times from business_hours_start to business_hours_end."""
    return [time(hour, 0) for hour in range(config.business_hours_start, config.business_hours_end + 1)]


def generate_slots(
    db: Session,
    start: Optional[date] = None,
    days: Optional[int] = None,
    config: Optional[Settings] = None,
) -> int:
    """
    Create available slots for every working day in [start, start + days).

    Args:
        db: Session; the caller commits
        start: First day; defaults to tomorrow
        days: Number of calendar days; defaults to booking_days_advance
        config: Settings with working days and hours

    Returns:
        Number of slots created
    """
    config = config or default_settings
    start = start or date.today() + timedelta(days=1)
    days = config.booking_days_advance if days is None else days
    if days <= 0:
        return 0

    end = start + timedelta(days=days - 1)
    existing: Set[Tuple[date, time]] = {
        (row.date, row.time)
        for row in db.execute(select(Slot.date, Slot.time).where(Slot.date.between(start, end)))
    }

    times = working_slot_times(config)
    created = 0
    for offset in range(days):
        day = start + timedelta(days=offset)
        if day.isoweekday() not in config.working_days:
            continue
        for slot_time in times:
            if (day, slot_time) in existing:
                continue
            db.add(Slot(date=day, time=slot_time, status=SlotStatus.AVAILABLE))
            created += 1

    db.flush()
    logger.info(
        "Slots generated",
        extra={"start": start.isoformat(), "end": end.isoformat(), "created": created},
    )
    return created


def seed_services(db: Session, seeds: Optional[List[ServiceSeed]] = None) -> int:
    """
    Insert the default service catalog into an empty services table.

    Returns:
        Number of services created (0 if any service already exists)
    """
    if db.execute(select(func.count()).select_from(Service)).scalar_one() > 0:
        logger.info("Services already present, skipping seed")
        return 0

    seeds = DEFAULT_SERVICES if seeds is None else seeds
    for position, seed in enumerate(seeds, start=1):
        db.add(Service(
            name=seed.name,
            description=seed.description,
            price=seed.price,
            duration_minutes=seed.duration_minutes,
            active=True,
            sort_order=position,
        ))

    db.flush()
    logger.info("Services seeded", extra={"created": len(seeds)})
    return len(seeds)
