from datetime import date, time

from medibook.models.appointment import AppointmentStatus
from medibook.scheduling.grid import SlotGrid
from medibook.scheduling.store import AppointmentStore


class AvailabilityCalculator:
    """Free grid cells of one provider on one local day.

    Read-only. By default a cancelled appointment keeps its cell out of the
    result even though it no longer blocks a new booking there;
    ``include_cancelled=False`` frees those cells.
    """

    def __init__(self, store: AppointmentStore, grid: SlotGrid, include_cancelled: bool = True):
        self.store = store
        self.grid = grid
        self.include_cancelled = include_cancelled

    def booked_cells(self, provider_id: int, day: date) -> set[time]:
        start, end = self.grid.day_bounds(day)
        appointments = self.store.find_by_provider_and_range(provider_id, start, end)

        return {
            self.grid.cell_label(appointment.scheduled_at)
            for appointment in appointments
            if self.include_cancelled or appointment.status != AppointmentStatus.CANCELLED.value
        }

    def available_slots(self, provider_id: int, day) -> list[time]:
        day = self.grid.parse_day(day)
        booked = self.booked_cells(provider_id, day)
        return [cell for cell in self.grid.cells() if cell not in booked]
