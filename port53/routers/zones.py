"""
Zone Management API Router
CRUD for zones, their backends and their records
"""

from fastapi import APIRouter, Depends, Path, Request

from ..database import Database, Zone, get_database
from ..models.zones import ZoneCreate, ZonePatch
from ..services.jsonapi import JSONAPIResponse
from ..services.validation import check_zone
from .resources import ResourceRoute


router = APIRouter(prefix="/zones", tags=["Zones"], default_response_class=JSONAPIResponse)

route = ResourceRoute(Zone, ZoneCreate, ZonePatch, check=check_zone)


# =============================================================================
# Zone CRUD Operations
# =============================================================================

@router.get(
    "",
    summary="List zones",
    description="Filtered, sorted and paginated list of zones, e.g. ?filter[name]=example.com&include=backends"
)
async def list_zones(request: Request, database: Database = Depends(get_database)):
    return await route.list(request, database)


@router.post(
    "",
    status_code=201,
    summary="Create zone",
    description="Create a zone with SOA defaults for any attribute left out"
)
async def create_zone(request: Request, database: Database = Depends(get_database)):
    return await route.create(request, database)


@router.get(
    "/{zone_id}",
    summary="Get zone",
    description="Get a single zone, include=backends,records expands relationships"
)
async def get_zone(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.get(request, database, zone_id)


@router.patch(
    "/{zone_id}",
    summary="Update zone",
    description="Apply the attributes present in the request"
)
async def update_zone(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.update(request, database, zone_id)


@router.delete(
    "/{zone_id}",
    status_code=204,
    summary="Delete zone",
    description="Delete a zone, its records are left orphaned"
)
async def delete_zone(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.delete(request, database, zone_id)


# =============================================================================
# Backend Associations
# =============================================================================

@router.get("/{zone_id}/backends", summary="List zone backends")
async def list_zone_backends(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.list_related(request, database, zone_id, "backends")


@router.post("/{zone_id}/backends", summary="Add backend to zone")
async def add_zone_backend(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.add_related(request, database, zone_id, "backends")


@router.patch("/{zone_id}/backends", summary="Replace zone backends")
async def replace_zone_backends(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.replace_related(request, database, zone_id, "backends")


@router.delete("/{zone_id}/backends", summary="Remove backend from zone")
async def remove_zone_backend(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.remove_related(request, database, zone_id, "backends")


# =============================================================================
# Record Associations
# =============================================================================

@router.get("/{zone_id}/records", summary="List zone records")
async def list_zone_records(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.list_related(request, database, zone_id, "records")


@router.post(
    "/{zone_id}/records",
    summary="Add record to zone",
    description="Move an existing record into this zone"
)
async def add_zone_record(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.add_related(request, database, zone_id, "records")


@router.patch(
    "/{zone_id}/records",
    summary="Replace zone records",
    description="Records not listed are orphaned, listed records move into this zone"
)
async def replace_zone_records(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.replace_related(request, database, zone_id, "records")


@router.delete(
    "/{zone_id}/records",
    summary="Remove record from zone",
    description="Orphan one record of this zone"
)
async def remove_zone_record(
    request: Request,
    zone_id: str = Path(..., description="Zone ID"),
    database: Database = Depends(get_database),
):
    return await route.remove_related(request, database, zone_id, "records")
