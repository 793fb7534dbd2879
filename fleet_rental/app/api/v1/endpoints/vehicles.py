"""
Vehicle API Endpoints.

Public, cached browsing plus owner/admin management of the fleet registry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.guards import require_role
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.vehicle_enums import VehicleAvailability, VehicleType
from fleet_rental.app.schemas.vehicle import (
    VehicleCreate,
    VehicleUpdate,
    VehicleAvailabilityUpdate,
    VehicleResponse,
    VehicleListResponse,
)
from fleet_rental.app.services.cache import CacheService
from fleet_rental.app.services.fleet_registry import FleetRegistry

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])

MANAGERS = [UserRole.OWNER, UserRole.ADMIN]


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    vehicle_type: Optional[VehicleType] = Query(None),
    availability: Optional[VehicleAvailability] = Query(None),
    city: Optional[str] = Query(None, max_length=100),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum daily rate"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum daily rate"),
    db: AsyncSession = Depends(get_db)
):
    """Browse vehicles (public, cached)."""
    cache_key = CacheService.build_key("vehicles", request)
    cached = await CacheService.get(cache_key)
    if cached is not None:
        return cached

    vehicles, total = await FleetRegistry.list_vehicles(
        db,
        page=page,
        page_size=page_size,
        vehicle_type=vehicle_type,
        availability=availability,
        city=city,
        min_price=min_price,
        max_price=max_price,
    )
    response = VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        page_size=page_size
    )
    await CacheService.set(cache_key, response.model_dump(mode="json"))
    return response


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """Register a vehicle owned by the caller."""
    vehicle = await FleetRegistry.create_vehicle(db, vehicle_data, current_user)
    return VehicleResponse.model_validate(vehicle)


@router.get("/my", response_model=VehicleListResponse)
async def list_my_vehicles(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    current_user: dict = Depends(require_role([UserRole.OWNER])),
    db: AsyncSession = Depends(get_db)
):
    """Vehicles owned by the authenticated owner, in any availability."""
    vehicles, total = await FleetRegistry.list_vehicles(
        db, page=page, page_size=page_size, owner_id=current_user["user_id"]
    )
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    request: Request,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    db: AsyncSession = Depends(get_db)
):
    """Vehicle details (public, cached)."""
    cache_key = CacheService.build_key("vehicles", request)
    cached = await CacheService.get(cache_key)
    if cached is not None:
        return cached

    vehicle = await FleetRegistry.get_vehicle(db, vehicle_id)
    response = VehicleResponse.model_validate(vehicle)
    await CacheService.set(cache_key, response.model_dump(mode="json"))
    return response


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await FleetRegistry.update_vehicle(db, vehicle_id, vehicle_data, current_user)
    return VehicleResponse.model_validate(vehicle)


@router.patch("/{vehicle_id}/availability", response_model=VehicleResponse)
async def update_vehicle_availability(
    body: VehicleAvailabilityUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """
    Set availability to available, maintenance or unavailable.

    'booked' is reserved for the booking flow and is rejected.
    """
    vehicle = await FleetRegistry.update_availability(
        db, vehicle_id, body.availability, current_user, reason=body.reason
    )
    return VehicleResponse.model_validate(vehicle)


@router.delete("/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete; open bookings on the vehicle are cancelled."""
    vehicle = await FleetRegistry.delete_vehicle(db, vehicle_id, current_user)
    return {"success": True, "message": "Vehicle deleted successfully", "vehicle_id": vehicle.id}
