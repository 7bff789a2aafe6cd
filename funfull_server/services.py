"""Bookable services endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from funfull_server.auth import require_access_token
from funfull_server.database import Database, get_database
from funfull_server.repository import StorageError

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", dependencies=[Depends(require_access_token)], response_model=None)
async def get_all_services(db: Database = Depends(get_database)) -> dict | JSONResponse:
    """List services in sheet order, without rows lacking a name."""
    try:
        services = await db.services.list_all()
    except StorageError as e:
        logger.error("Loading services failed", extra={"sheet": e.sheet, "error": str(e.cause)})
        return JSONResponse(
            status_code=500, content={"error": "Failed to load services from Google Sheets"}
        )
    return {"services": services}
