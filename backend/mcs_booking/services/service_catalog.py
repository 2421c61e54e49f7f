"""
Read-only lookup of bookable services.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mcs_booking.models.services import Service


@dataclass(frozen=True)
class CatalogEntry:
    """Detached copy of a service row, safe to use after the session closes."""
    id: UUID
    name: str
    price: Decimal
    duration_minutes: int
    active: bool

    @classmethod
    def from_model(cls, service: Service) -> "CatalogEntry":
        return cls(
            id=service.id,
            name=service.name,
            price=Decimal(service.price),
            duration_minutes=service.duration_minutes,
            active=service.active,
        )


class ServiceCatalog:
    """Service lookups on a caller-provided session."""

    def __init__(self, db: Session):
        self.db = db

    def find_active_by_id(self, service_id: UUID) -> Optional[Service]:
        """Return the service if it exists and is active."""
        service = self.db.get(Service, service_id)
        if service is None or not service.active:
            return None
        return service

    def find_many(self, service_ids: Iterable[UUID]) -> Dict[UUID, Service]:
        """
        Look up several services at once.

        Unknown and inactive ids are omitted; callers diff the result
        against the requested ids to find the invalid ones.
        """
        ids = set(service_ids)
        if not ids:
            return {}

        stmt = select(Service).where(Service.id.in_(ids), Service.active.is_(True))
        return {service.id: service for service in self.db.execute(stmt).scalars().all()}

    def list_active(self) -> List[Service]:
        """All active services, in display order."""
        stmt = (
            select(Service)
            .where(Service.active.is_(True))
            .order_by(Service.sort_order, Service.name)
        )
        return list(self.db.execute(stmt).scalars().all())

    def snapshot(self, service_ids: Iterable[UUID]) -> Dict[UUID, CatalogEntry]:
        """Detached entries for the active services among service_ids."""
        return {
            service_id: CatalogEntry.from_model(service)
            for service_id, service in self.find_many(service_ids).items()
        }
