"""Tests for service options: picked items add minutes and price to a booking.

Run with: pytest tests/test_options.py -v
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from apps.bookings.engine import get_available_slots
from apps.bookings.models import Booking, BookingStatus
from apps.core.exceptions import ConflictError, ErrorCode, ValidationError
from apps.services.catalog import quote_amount, resolve_option_items, resolve_services, total_duration
from apps.services.models import ServiceOption, ServiceOptionItem
from conftest import BOOKING_DAY, NOW, TPE, local_dt, option_item

TEN = local_dt(BOOKING_DAY, 10, 0)


def hhmm(slots):
    return [s.astimezone(TPE).strftime('%H:%M') for s in slots]


@pytest.mark.django_db
class TestResolveOptionItems:

    def test_keeps_the_given_order(self, gel, nail_length, nail_art):
        ids = [option_item(nail_art, 'French tip'), option_item(nail_length, 'Long')]
        items = resolve_option_items(ids, [gel])
        assert [i.name for i in items] == ['French tip', 'Long']

    def test_required_option_needs_a_pick(self, gel, nail_length):
        with pytest.raises(ValidationError) as exc_info:
            resolve_option_items([], [gel])
        assert 'option_item_ids' in exc_info.value.fields

    def test_single_choice_allows_one_pick(self, gel, nail_length):
        with pytest.raises(ValidationError):
            resolve_option_items([option_item(nail_length, 'Short'), option_item(nail_length, 'Long')], [gel])

    def test_multiple_choice_allows_several_picks(self, gel, nail_art):
        ids = [option_item(nail_art, 'Rhinestones'), option_item(nail_art, 'French tip')]
        assert len(resolve_option_items(ids, [gel])) == 2

    def test_item_of_a_service_not_booked_is_rejected(self, gel, removal):
        option = ServiceOption.objects.create(service=removal, name='Soak')
        item = ServiceOptionItem.objects.create(option=option, name='Extra soak', duration_minutes=10)
        with pytest.raises(ValidationError):
            resolve_option_items([str(item.id)], [gel])

    def test_malformed_id(self, gel):
        with pytest.raises(ValidationError):
            resolve_option_items(['not-a-uuid'], [gel])

    def test_duplicate_pick(self, gel, nail_art):
        rhinestones = option_item(nail_art, 'Rhinestones')
        with pytest.raises(ValidationError):
            resolve_option_items([rhinestones, rhinestones], [gel])

    def test_no_options_no_picks(self, gel):
        assert resolve_option_items([], [gel]) == []


@pytest.mark.django_db
class TestDurationAndAmount:

    def test_items_add_minutes_and_price(self, gel, removal, nail_length, nail_art):
        services = resolve_services([str(gel.id), str(removal.id)])
        items = resolve_option_items([option_item(nail_length, 'Long'), option_item(nail_art, 'Rhinestones')],
                                     services)

        assert total_duration(services, items) == 60 + 30 + 30 + 15
        assert quote_amount(services, option_items=items) == Decimal('1850.00')

    def test_items_are_charged_on_a_covered_service(self, gel, nail_length):
        items = resolve_option_items([option_item(nail_length, 'Long')], [gel])
        assert quote_amount([gel], covered_service_ids=[gel.id], option_items=items) == Decimal('200.00')

    def test_items_keep_their_price_for_platinum(self, gel, nail_length):
        items = resolve_option_items([option_item(nail_length, 'Long')], [gel])
        assert quote_amount([gel], privileged=True, option_items=items) == Decimal('1200.00')


@pytest.mark.django_db
class TestSlotsWithOptions:

    def test_option_minutes_shorten_the_day(self, designer, gel, nail_length):
        short = get_available_slots(designer.id, BOOKING_DAY, [str(gel.id)], now=NOW,
                                    option_item_ids=[option_item(nail_length, 'Short')])
        long = get_available_slots(designer.id, BOOKING_DAY, [str(gel.id)], now=NOW,
                                   option_item_ids=[option_item(nail_length, 'Long')])
        assert hhmm(short)[-1] == '18:00'
        assert hhmm(long)[-1] == '17:30'

    def test_option_minutes_count_against_existing_bookings(self, designer, gel, nail_length, make_booking):
        make_booking(local_dt(BOOKING_DAY, 11, 0))

        short = get_available_slots(designer.id, BOOKING_DAY, [str(gel.id)], now=NOW,
                                    option_item_ids=[option_item(nail_length, 'Short')])
        long = get_available_slots(designer.id, BOOKING_DAY, [str(gel.id)], now=NOW,
                                   option_item_ids=[option_item(nail_length, 'Long')])

        assert '10:00' in hhmm(short)
        assert '10:00' not in hhmm(long)

    def test_required_option_left_out(self, designer, gel, nail_length):
        with pytest.raises(ValidationError):
            get_available_slots(designer.id, BOOKING_DAY, [str(gel.id)], now=NOW)


@pytest.mark.django_db
class TestCreateWithOptions:

    def test_booking_records_the_picked_items(self, lifecycle, customer, designer, gel, nail_length, nail_art):
        long, tip = option_item(nail_length, 'Long'), option_item(nail_art, 'French tip')

        booking = lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN,
                                           option_item_ids=[long, tip], now=NOW)

        assert booking.duration_minutes == 105
        assert booking.amount == Decimal('1500.00')
        assert booking.option_item_ids == [long, tip]
        assert booking.option_names == ['Nail length: Long', 'Nail art: French tip']

    def test_option_minutes_block_the_following_slot(self, lifecycle, customer, other_customer,
                                                     designer, gel, nail_length):
        lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN,
                                 option_item_ids=[option_item(nail_length, 'Long')], now=NOW)

        with pytest.raises(ConflictError) as exc_info:
            lifecycle.create_booking(other_customer, designer.id, [str(gel.id)], local_dt(BOOKING_DAY, 11, 0),
                                     option_item_ids=[option_item(nail_length, 'Short')], now=NOW)

        assert exc_info.value.code is ErrorCode.SLOT_UNAVAILABLE
        assert Booking.objects.count() == 1

    def test_missing_required_option_writes_nothing(self, lifecycle, customer, designer, gel, nail_length):
        with pytest.raises(ValidationError):
            lifecycle.create_booking(customer, designer.id, [str(gel.id)], TEN, now=NOW)
        assert not Booking.objects.exists()

    def test_paid_option_on_a_covered_service_awaits_payment(self, lifecycle, customer, designer, gel,
                                                              nail_length, active_pass):
        booking = lifecycle.create_booking(
            customer, designer.id, [str(gel.id)], TEN,
            option_item_ids=[option_item(nail_length, 'Long')],
            active_pass_id=str(active_pass.id), pass_service_ids=[str(gel.id)], now=NOW,
        )
        assert booking.amount == Decimal('200.00')
        assert booking.status == BookingStatus.PENDING_PAYMENT

    def test_free_option_on_a_covered_service_costs_nothing(self, lifecycle, customer, designer, gel,
                                                            nail_length, active_pass):
        booking = lifecycle.create_booking(
            customer, designer.id, [str(gel.id)], TEN,
            option_item_ids=[option_item(nail_length, 'Short')],
            active_pass_id=str(active_pass.id), pass_service_ids=[str(gel.id)], now=NOW,
        )
        assert booking.amount == Decimal('0.00')
        assert booking.status == BookingStatus.PENDING_CONFIRMATION


@pytest.mark.django_db
class TestOptionEndpoints:

    def upcoming(self, hour):
        day = timezone.localdate() + timedelta(days=10)
        return timezone.make_aware(datetime(day.year, day.month, day.day, hour, 0))

    def test_slots_take_option_items(self, client, designer, gel, nail_length):
        response = client.get(reverse('bookings:api_slots'), {
            'designer_id': str(designer.id),
            'date': self.upcoming(10).date().isoformat(),
            'service_ids': str(gel.id),
            'option_item_ids': option_item(nail_length, 'Long'),
        })
        assert response.status_code == 200
        assert response.json()['slots'][-1] == self.upcoming(17).replace(minute=30).isoformat()

    def test_slots_without_a_required_pick(self, client, designer, gel, nail_length):
        response = client.get(reverse('bookings:api_slots'), {
            'designer_id': str(designer.id),
            'date': self.upcoming(10).date().isoformat(),
            'service_ids': str(gel.id),
        })
        assert response.status_code == 400
        assert response.json()['error'] == 'INVALID_INPUT'

    def test_create_returns_option_names(self, client, designer, gel, nail_length):
        response = client.post(reverse('bookings:api_create'), {
            'designer_id': str(designer.id),
            'service_ids': [str(gel.id)],
            'option_item_ids': [option_item(nail_length, 'Long')],
            'start_time': self.upcoming(10).isoformat(),
        }, content_type='application/json', HTTP_X_REQUESTER_ID='cust-1')

        assert response.status_code == 201
        booking = response.json()['booking']
        assert booking['option_names'] == ['Nail length: Long']
        assert booking['duration_minutes'] == 90
        assert booking['amount'] == '1400.00'
