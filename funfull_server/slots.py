"""Schedule endpoint.

The schedule sheet has one row per date and one column per time slot.
A slot is free while its cell is empty.
"""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from funfull_server.auth import require_access_token
from funfull_server.database import Database, get_database
from funfull_server.repository import StorageError, Table

router = APIRouter(prefix="/slots", tags=["slots"])


def collect_slots(table: Table) -> tuple[list[dict[str, str]], list[dict[str, Any]]]:
    """Split a schedule table into free slots and the full grid.

    The first column is always exposed as `date`, whatever its header says.
    """
    if not table.header:
        return [], []

    date_column, time_columns = table.header[0], table.header[1:]
    available: list[dict[str, str]] = []
    all_slots: list[dict[str, Any]] = []

    for record in table.records:
        date = record.get(date_column, "")
        slot: dict[str, Any] = {"date": date}
        for time in time_columns:
            slot[time] = record.get(time, "")
            if slot[time] == "":
                available.append({"date": date, "time": time})
        all_slots.append(slot)

    return available, all_slots


@router.get("", dependencies=[Depends(require_access_token)], response_model=None)
async def get_available_slots(db: Database = Depends(get_database)) -> dict | JSONResponse:
    """List free slots along with the whole schedule grid."""
    try:
        table = await db.schedule.read_table()
    except StorageError as e:
        logger.error("Loading slots failed", extra={"sheet": e.sheet, "error": str(e.cause)})
        return JSONResponse(
            status_code=500, content={"error": "Failed to load slots from Google Sheets"}
        )

    available, all_slots = collect_slots(table)
    return {"availableSlots": available, "allSlots": all_slots}
