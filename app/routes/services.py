from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional, Union

from app.database import get_db
from app.core.dependencies import require_admin
from app.models.service import Service, ServiceCategory, VehicleType, WEEKDAYS
from app.models.user import Language, User
from app.schemas.service import ServiceCreate, ServiceUpdate, ServiceResponse, LocalizedServiceResponse
from app.schemas.user import MessageResponse
from app.services.catalog_service import CatalogService
from app.core.exceptions import ValidationError

router = APIRouter()

def _to_response(service: Service) -> ServiceResponse:
    response = ServiceResponse.model_validate(service)
    response.current_price = CatalogService.current_price(service, CatalogService.business_today())
    return response

def _to_localized(service: Service, lang: Language) -> LocalizedServiceResponse:
    features = service.features or {}
    return LocalizedServiceResponse(
        id=service.id,
        name=service.localized("name", lang.value),
        description=service.localized("description", lang.value),
        features=features.get(lang.value) or features.get("nl") or [],
        category=service.category,
        price=service.price,
        current_price=CatalogService.current_price(service, CatalogService.business_today()),
        duration=service.duration,
        loyalty_points_earned=service.loyalty_points_earned,
        vehicle_types=service.vehicle_types or [],
    )

@router.get("/", response_model=List[Union[LocalizedServiceResponse, ServiceResponse]])
def list_services(
    category: Optional[ServiceCategory] = Query(None),
    vehicle_type: Optional[VehicleType] = Query(None),
    day: Optional[str] = Query(None, description="Weekday name, e.g. monday"),
    lang: Optional[Language] = Query(None),
    db: Session = Depends(get_db)
):
    """List active services, optionally localized to one language"""
    if day and day.lower() not in WEEKDAYS:
        raise ValidationError(f"Unknown day: {day}")

    services = CatalogService.list_services(
        db, category, vehicle_type.value if vehicle_type else None, day
    )
    if lang:
        return [_to_localized(s, lang) for s in services]
    return [_to_response(s) for s in services]

@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return _to_response(CatalogService.get_active_service(db, service_id))

@router.post("/", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    service_data: ServiceCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return _to_response(CatalogService.create_service(db, service_data))

@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: int,
    service_data: ServiceUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return _to_response(CatalogService.update_service(db, service_id, service_data))

@router.delete("/{service_id}", response_model=MessageResponse)
def delete_service(
    service_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a service; it stays referenced by existing bookings"""
    CatalogService.deactivate_service(db, service_id)
    return MessageResponse(message="Service deactivated")
