"""Pytest configuration and shared fixtures."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from apps.bookings.engine import SlotAvailabilityCalculator
from apps.bookings.lifecycle import BookingLifecycle
from apps.bookings.models import Booking, BookingStatus
from apps.bookings.reschedule import RescheduleCoordinator
from apps.bookings.stores.django_store import DjangoBookingRepository, DjangoScheduleRepository
from apps.core.roles import Requester, Role
from apps.designers.models import Designer
from apps.notifications.dispatcher import NotificationDispatcher
from apps.passes.ledger import PassConsumptionLedger
from apps.passes.models import ActivePass, ContentItem, SeasonPass
from apps.passes.stores.django_store import DjangoPassLedgerRepository
from apps.services.models import Service, ServiceOption, ServiceOptionItem

TPE = ZoneInfo('Asia/Taipei')

# Monday 2024-05-20 09:00 local; every service-level test pins `now` to this.
NOW = datetime(2024, 5, 20, 9, 0, tzinfo=TPE)
BOOKING_DAY = date(2024, 6, 1)


def local_dt(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TPE)


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every notification in memory."""

    def __init__(self):
        self.events = []

    def notify(self, event, payload):
        self.events.append((event, payload))


# ── Requesters ────────────────────────────────────────────────────────────────

@pytest.fixture
def customer() -> Requester:
    return Requester('cust-1')


@pytest.fixture
def other_customer() -> Requester:
    return Requester('cust-2')


@pytest.fixture
def platinum() -> Requester:
    return Requester('plat-1', Role.PLATINUM)


@pytest.fixture
def admin() -> Requester:
    return Requester('admin-1', Role.ADMIN)


# ── Catalog ───────────────────────────────────────────────────────────────────

@pytest.fixture
def designer(db) -> Designer:
    return Designer.objects.create(name='Mika')


@pytest.fixture
def second_designer(db) -> Designer:
    return Designer.objects.create(name='Yuna', display_order=1)


@pytest.fixture
def gel(designer, second_designer) -> Service:
    service = Service.objects.create(
        name='Gel manicure', duration_minutes=60,
        price=Decimal('1200.00'), platinum_price=Decimal('1000.00'),
    )
    service.designers.add(designer, second_designer)
    return service


@pytest.fixture
def removal(designer) -> Service:
    service = Service.objects.create(name='Gel removal', duration_minutes=30, price=Decimal('300.00'))
    service.designers.add(designer)
    return service


@pytest.fixture
def nail_length(gel) -> ServiceOption:
    """Required single choice on gel: short adds nothing, long adds 30 min and NT$200."""
    option = ServiceOption.objects.create(service=gel, name='Nail length', required=True)
    ServiceOptionItem.objects.create(option=option, name='Short', display_order=0)
    ServiceOptionItem.objects.create(option=option, name='Long', price=Decimal('200.00'),
                                     duration_minutes=30, display_order=1)
    return option


@pytest.fixture
def nail_art(gel) -> ServiceOption:
    """Optional multiple choice on gel."""
    option = ServiceOption.objects.create(service=gel, name='Nail art', multi_select=True, display_order=1)
    ServiceOptionItem.objects.create(option=option, name='Rhinestones', price=Decimal('150.00'),
                                     duration_minutes=15)
    ServiceOptionItem.objects.create(option=option, name='French tip', price=Decimal('100.00'),
                                     duration_minutes=15)
    return option


def option_item(option, name) -> str:
    return str(option.items.get(name=name).id)


# ── Season passes ─────────────────────────────────────────────────────────────

@pytest.fixture
def season_pass(db) -> SeasonPass:
    return SeasonPass.objects.create(
        name='Spring Pass', duration_months=3,
        variants=[{'name': 'standard', 'price': 5000}],
    )


@pytest.fixture
def gel_item(season_pass, gel) -> ContentItem:
    return ContentItem.objects.create(season_pass=season_pass, name='Gel manicure', service=gel, quantity=2)


@pytest.fixture
def active_pass(season_pass, gel_item, customer) -> ActivePass:
    return ActivePass.objects.create(
        customer_id=customer.id,
        season_pass=season_pass,
        pass_name=season_pass.name,
        variant_name='standard',
        purchase_date=NOW - timedelta(days=10),
        expiry_date=NOW + timedelta(days=80),
        remaining_usages={str(gel_item.id): 2},
    )


# ── Engine wiring ─────────────────────────────────────────────────────────────

@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def booking_repo(db) -> DjangoBookingRepository:
    return DjangoBookingRepository()


@pytest.fixture
def calculator(booking_repo) -> SlotAvailabilityCalculator:
    return SlotAvailabilityCalculator(DjangoScheduleRepository(), booking_repo)


@pytest.fixture
def ledger(db) -> PassConsumptionLedger:
    return PassConsumptionLedger(DjangoPassLedgerRepository())


@pytest.fixture
def lifecycle(booking_repo, calculator, ledger, dispatcher) -> BookingLifecycle:
    return BookingLifecycle(booking_repo, calculator, ledger, dispatcher)


@pytest.fixture
def coordinator(booking_repo, calculator, dispatcher) -> RescheduleCoordinator:
    return RescheduleCoordinator(booking_repo, calculator, dispatcher)


@pytest.fixture
def make_booking(designer):
    """Insert a booking row directly, bypassing slot validation."""
    def make(start_time, duration_minutes=60, status=BookingStatus.CONFIRMED,
             customer_id='cust-1', on_designer=None, **extra):
        return Booking.objects.create(
            customer_id=customer_id,
            designer=on_designer or designer,
            service_ids=[],
            service_names=['Gel manicure'],
            start_time=start_time,
            duration_minutes=duration_minutes,
            amount=Decimal('1200.00'),
            status=status,
            **extra,
        )
    return make
