"""
Backend API Router
CRUD for backends and their zone associations
"""

from fastapi import APIRouter, Depends, Path, Request

from ..database import Backend, Database, get_database
from ..models.backends import BackendCreate, BackendPatch
from ..services.jsonapi import JSONAPIResponse
from .resources import ResourceRoute


router = APIRouter(prefix="/backends", tags=["Backends"], default_response_class=JSONAPIResponse)

route = ResourceRoute(Backend, BackendCreate, BackendPatch)


# =============================================================================
# Backend CRUD Operations
# =============================================================================

@router.get(
    "",
    summary="List backends",
    description="Filtered, sorted and paginated list of backends"
)
async def list_backends(request: Request, database: Database = Depends(get_database)):
    return await route.list(request, database)


@router.post(
    "",
    status_code=201,
    summary="Create backend",
    description="Create a backend, optionally linking zones through relationships.zones"
)
async def create_backend(request: Request, database: Database = Depends(get_database)):
    return await route.create(request, database)


@router.get(
    "/{backend_id}",
    summary="Get backend",
    description="Get a single backend"
)
async def get_backend(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.get(request, database, backend_id)


@router.patch(
    "/{backend_id}",
    summary="Update backend",
    description="Apply the attributes present in the request"
)
async def update_backend(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.update(request, database, backend_id)


@router.delete(
    "/{backend_id}",
    status_code=204,
    summary="Delete backend",
    description="Delete a backend, deleting a missing backend succeeds"
)
async def delete_backend(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.delete(request, database, backend_id)


# =============================================================================
# Zone Associations
# =============================================================================

@router.get(
    "/{backend_id}/zones",
    summary="List backend zones",
    description="Zones served by the backend, 404 when there are none"
)
async def list_backend_zones(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.list_related(request, database, backend_id, "zones")


@router.post(
    "/{backend_id}/zones",
    summary="Add zone to backend",
    description="Link one zone, linking a zone twice is not an error"
)
async def add_backend_zone(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.add_related(request, database, backend_id, "zones")


@router.patch(
    "/{backend_id}/zones",
    summary="Replace backend zones",
    description="Replace the zone set, all zones must exist. An empty list clears it (204)"
)
async def replace_backend_zones(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.replace_related(request, database, backend_id, "zones")


@router.delete(
    "/{backend_id}/zones",
    summary="Remove zone from backend",
    description="Unlink one zone and return the remaining ones, 204 when none remain"
)
async def remove_backend_zone(
    request: Request,
    backend_id: str = Path(..., description="Backend ID"),
    database: Database = Depends(get_database),
):
    return await route.remove_related(request, database, backend_id, "zones")
