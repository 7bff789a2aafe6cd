"""Database layer: one spreadsheet acting as a makeshift database.

Sheets (one repository each):
- Schedule: row per date, column per time slot; a blank cell is a free slot
- Orders: row per order keyed by session ID (v1 or v2 layout)
- Services: row per bookable service keyed by name (v1 or v2 layout)

The Database is created during application lifespan and handed to
handlers via dependency injection.
"""

from fastapi import Request

from funfull_server.config import Settings
from funfull_server.layouts import ORDER_LAYOUTS, SCHEDULE, SERVICE_LAYOUTS
from funfull_server.repository import SheetRepository
from funfull_server.schemas import ORDER_COLUMNS, OrderColumns
from funfull_server.transport import SheetsTransport


class Database:
    """Spreadsheet-backed repositories sharing one transport."""

    def __init__(self, transport: SheetsTransport, settings: Settings) -> None:
        """Initialize repositories for every resource sheet.

        Args:
            transport: Store adapter used by all repositories
            settings: Spreadsheet ID, sheet names and layout versions
        """
        self._transport = transport
        spreadsheet_id = settings.google_spreadsheet_id

        self.schedule = SheetRepository(transport, spreadsheet_id, settings.schedule_sheet, SCHEDULE)
        self.orders = SheetRepository(
            transport,
            spreadsheet_id,
            settings.orders_sheet,
            ORDER_LAYOUTS[settings.orders_layout],
        )
        self.services = SheetRepository(
            transport,
            spreadsheet_id,
            settings.services_sheet,
            SERVICE_LAYOUTS[settings.services_layout],
        )
        self.orders_version = settings.orders_layout
        self.order_columns: OrderColumns = ORDER_COLUMNS[settings.orders_layout]

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()


def get_database(request: Request) -> Database:
    """FastAPI dependency to get the database instance.

    The database is stored in app.state during application lifespan.

    Usage:
        @router.get("/example")
        async def example(db: Database = Depends(get_database)):
            ...
    """
    return request.app.state.database
