"""
Pass store interface.

Exposes the atomic operations the ledger and pass activation need: a row
lock on one ActivePass, per-month counters, and the consumption records
that make refunds idempotent.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from apps.passes.models import (
    ActivePass,
    ContentItem,
    PassConsumption,
    SeasonPass,
    SeasonPassOrder,
)


class PassLedgerRepository(ABC):

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        ...

    @abstractmethod
    def on_commit(self, callback) -> None:
        ...

    # ── Active passes ─────────────────────────────────────────────────────────

    @abstractmethod
    def get_pass(self, active_pass_id: str, for_update: bool = False) -> ActivePass | None:
        """Return an ActivePass, locking its row until commit when for_update."""
        ...

    @abstractmethod
    def save_pass(self, active_pass: ActivePass, fields: list[str]) -> None:
        ...

    @abstractmethod
    def create_pass(self, **fields) -> ActivePass:
        ...

    @abstractmethod
    def list_passes_for_customer(self, customer_id: str) -> list[ActivePass]:
        ...

    # ── Catalog ───────────────────────────────────────────────────────────────

    @abstractmethod
    def get_season_pass(self, season_pass_id: str) -> SeasonPass | None:
        ...

    @abstractmethod
    def get_content_item(self, content_item_id: str) -> ContentItem | None:
        ...

    @abstractmethod
    def list_content_items(self, season_pass_id: str) -> list[ContentItem]:
        ...

    # ── Monthly counters ──────────────────────────────────────────────────────

    @abstractmethod
    def get_monthly_used(self, active_pass: ActivePass, content_item_id: str, month: str) -> int:
        ...

    @abstractmethod
    def add_monthly_usage(self, active_pass: ActivePass, content_item_id: str,
                          month: str, delta: int) -> int:
        """Apply `delta` to the month's counter, flooring at zero. Returns the new value."""
        ...

    # ── Consumption records ───────────────────────────────────────────────────

    @abstractmethod
    def record_consumption(self, active_pass: ActivePass, content_item_id: str, quantity: int,
                           month: str, booking_id: str | None = None) -> PassConsumption:
        ...

    @abstractmethod
    def get_consumption(self, consumption_id: str, for_update: bool = False) -> PassConsumption | None:
        ...

    @abstractmethod
    def list_unrefunded(self, booking_id: str, for_update: bool = False) -> list[PassConsumption]:
        ...

    @abstractmethod
    def mark_refunded(self, consumption: PassConsumption, refunded_at: datetime) -> bool:
        """Set refunded_at once. Returns False if it was already set."""
        ...

    # ── Bookings ──────────────────────────────────────────────────────────────

    @abstractmethod
    def get_booking_owner(self, booking_id: str) -> str | None:
        """Customer id of a booking, or None when no such booking exists."""
        ...

    # ── Orders ────────────────────────────────────────────────────────────────

    @abstractmethod
    def get_order(self, order_id: str, for_update: bool = False) -> SeasonPassOrder | None:
        ...

    @abstractmethod
    def create_order(self, **fields) -> SeasonPassOrder:
        ...

    @abstractmethod
    def save_order(self, order: SeasonPassOrder, fields: list[str]) -> None:
        ...
