from datetime import datetime

from sqlalchemy.orm import Session

from medibook.scheduling.grid import SlotGrid
from medibook.scheduling.store import AppointmentStore


class ConflictChecker:
    """Detects a live booking in the grid cell of a proposed time.

    Cancelled appointments free their cell again; appointments of other
    providers never conflict.
    """

    def __init__(self, store: AppointmentStore, grid: SlotGrid):
        self.store = store
        self.grid = grid

    def has_conflict(
        self,
        provider_id: int,
        when: datetime,
        exclude_id: int | None = None,
        session: Session | None = None,
    ) -> bool:
        existing = self.store.find_active_in_slot(
            provider_id,
            self.grid.cell_start(when),
            exclude_id=exclude_id,
            session=session,
        )
        return existing is not None
