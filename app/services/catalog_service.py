from datetime import date, datetime
from zoneinfo import ZoneInfo
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.service import Service, ServiceCategory
from app.schemas.service import ServiceCreate, ServiceUpdate
from app.services.pricing import effective_price

JSON_FIELDS = ("name", "description", "features", "availability", "seasonal_pricing", "vehicle_types")

def _column_values(data, exclude_unset=False):
    """Enum columns keep their enum members, JSON columns get JSON-safe values"""
    values = data.model_dump(exclude_unset=exclude_unset)
    json_values = data.model_dump(mode="json", exclude_unset=exclude_unset, include=set(JSON_FIELDS))
    values.update(json_values)
    return values

class CatalogService:
    @staticmethod
    def create_service(db: Session, service_data: ServiceCreate):
        service = Service(**_column_values(service_data), is_active=True)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def get_service(db: Session, service_id: int):
        """Look up a service by id, active or not"""
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_active_service(db: Session, service_id: int):
        service = CatalogService.get_service(db, service_id)
        if not service or not service.is_active:
            raise NotFoundError(f"Service not found or inactive: {service_id}")
        return service

    @staticmethod
    def list_services(
        db: Session,
        category: Optional[ServiceCategory] = None,
        vehicle_type: Optional[str] = None,
        day: Optional[str] = None,
    ):
        query = db.query(Service).filter(Service.is_active == True)
        if category:
            query = query.filter(Service.category == category)

        services = query.order_by(Service.sort_order, Service.id).all()

        # JSON columns are filtered in Python to stay portable across backends
        if vehicle_type:
            services = [s for s in services if s.supports_vehicle(vehicle_type)]
        if day:
            services = [s for s in services if s.is_available_on(day)]
        return services

    @staticmethod
    def update_service(db: Session, service_id: int, service_data: ServiceUpdate):
        service = CatalogService.get_service(db, service_id)
        if not service:
            raise NotFoundError("Service not found")

        update_data = _column_values(service_data, exclude_unset=True)
        for field, value in update_data.items():
            setattr(service, field, value)

        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def deactivate_service(db: Session, service_id: int):
        """Soft delete; existing bookings keep their frozen prices"""
        service = CatalogService.get_service(db, service_id)
        if not service:
            raise NotFoundError("Service not found")

        service.is_active = False
        db.commit()
        return service

    @staticmethod
    def current_price(service: Service, on: date) -> float:
        return effective_price(service, on)

    @staticmethod
    def business_today() -> date:
        return datetime.now(ZoneInfo(settings.BUSINESS_TIMEZONE)).date()
