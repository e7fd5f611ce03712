"""Store interfaces (repository pattern).

Stores must be swappable. Each exposes only the operations the booking
engine needs: reads for the overlap check, a designer lock for the
read-modify-write window, and conditional writes.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime

from apps.bookings.models import Booking
from apps.bookings.value_objects import DaySchedule


class ScheduleRepository(ABC):
    """Read-only access to designer calendars and booking deadlines."""

    @abstractmethod
    def get_day_schedule(self, designer_id: str, day: date) -> DaySchedule | None:
        """Return the designer's windows for `day`, or None if the designer is unknown or inactive."""
        ...

    @abstractmethod
    def get_booking_deadline(self, designer_id: str | None) -> datetime | None:
        """Return the effective deadline: the designer's own, else the store-wide one."""
        ...

    @abstractmethod
    def get_closed_dates(self, designer_id: str, start: date, end: date) -> list[date]:
        """Return closed dates in [start, end], ascending."""
        ...

    @abstractmethod
    def list_designer_ids(self, service_ids: tuple[str, ...] = ()) -> list[str]:
        """Return active designers able to perform every given service."""
        ...

    @abstractmethod
    def designer_exists(self, designer_id: str) -> bool:
        """Check if an active designer exists."""
        ...


class BookingRepository(ABC):
    """Read/write access to bookings."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager spanning one all-or-nothing unit of work."""
        ...

    @abstractmethod
    def on_commit(self, callback) -> None:
        """Run `callback` after the current unit of work commits."""
        ...

    @abstractmethod
    def get(self, booking_id: str, for_update: bool = False) -> Booking | None:
        """Return a booking by ID, or None. for_update locks the row until commit."""
        ...

    @abstractmethod
    def get_by_request_key(self, request_key: str) -> Booking | None:
        """Return the booking created with this idempotency key, or None."""
        ...

    @abstractmethod
    def lock_designer(self, designer_id: str) -> None:
        """Serialize writers on one designer's calendar until commit."""
        ...

    @abstractmethod
    def list_active_for_designer(self, designer_id: str, start: datetime, end: datetime,
                                 exclude_id: str | None = None) -> list[Booking]:
        """Return non-cancelled bookings starting in [start, end), ordered by start_time."""
        ...

    @abstractmethod
    def count_active_for_designer(self, designer_id: str, start: datetime, end: datetime) -> int:
        """Count non-cancelled bookings starting in [start, end)."""
        ...

    @abstractmethod
    def create(self, **fields) -> Booking:
        ...

    @abstractmethod
    def save(self, booking: Booking, fields: list[str]) -> None:
        ...

    @abstractmethod
    def log_transition(self, booking: Booking, from_status: str, to_status: str,
                       changed_by: str, reason: str = '') -> None:
        ...

    @abstractmethod
    def list_for_customer(self, customer_id: str) -> list[Booking]:
        """Return the customer's bookings, newest start first."""
        ...

    @abstractmethod
    def list_refund_pending(self) -> list[Booking]:
        """Return cancelled bookings whose pass refund has not been applied yet."""
        ...
