"""
DNS Records API Router
CRUD for records and the zone each record belongs to
"""

from fastapi import APIRouter, Depends, Path, Request

from ..database import Database, Record, get_database
from ..models.records import RecordCreate, RecordPatch
from ..services.jsonapi import JSONAPIResponse
from ..services.validation import check_record
from .resources import ResourceRoute


router = APIRouter(prefix="/records", tags=["Records"], default_response_class=JSONAPIResponse)

route = ResourceRoute(
    Record, RecordCreate, RecordPatch,
    check=check_record,
    required_relationships=("zone",),
)


# =============================================================================
# Record CRUD Operations
# =============================================================================

@router.get(
    "",
    summary="List records",
    description="Filtered, sorted and paginated list of records, filter[zone]=<id> selects one zone"
)
async def list_records(request: Request, database: Database = Depends(get_database)):
    return await route.list(request, database)


@router.post(
    "",
    status_code=201,
    summary="Create record",
    description="Create a record, relationships.zone must name an existing zone"
)
async def create_record(request: Request, database: Database = Depends(get_database)):
    return await route.create(request, database)


@router.get("/{record_id}", summary="Get record")
async def get_record(
    request: Request,
    record_id: str = Path(..., description="Record ID"),
    database: Database = Depends(get_database),
):
    return await route.get(request, database, record_id)


@router.patch("/{record_id}", summary="Update record")
async def update_record(
    request: Request,
    record_id: str = Path(..., description="Record ID"),
    database: Database = Depends(get_database),
):
    return await route.update(request, database, record_id)


@router.delete("/{record_id}", status_code=204, summary="Delete record")
async def delete_record(
    request: Request,
    record_id: str = Path(..., description="Record ID"),
    database: Database = Depends(get_database),
):
    return await route.delete(request, database, record_id)


# =============================================================================
# Zone Association
# =============================================================================

@router.get("/{record_id}/zones", summary="Get record zone")
async def get_record_zone(
    request: Request,
    record_id: str = Path(..., description="Record ID"),
    database: Database = Depends(get_database),
):
    return await route.list_related(request, database, record_id, "zones")


@router.patch(
    "/{record_id}/zones",
    summary="Set record zone",
    description="Move the record to another zone, {\"data\": null} orphans it"
)
async def replace_record_zone(
    request: Request,
    record_id: str = Path(..., description="Record ID"),
    database: Database = Depends(get_database),
):
    return await route.replace_related(request, database, record_id, "zones")


@router.delete("/{record_id}/zones", summary="Remove record from its zone")
async def remove_record_zone(
    request: Request,
    record_id: str = Path(..., description="Record ID"),
    database: Database = Depends(get_database),
):
    return await route.remove_related(request, database, record_id, "zones")
