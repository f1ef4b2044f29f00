"""Returns, lateness and fines."""
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from models.database import db_errors
from models.fine import Fine
from models.movie_copy import Copy
from models.rental import Rental
from services.errors import (AlreadyPaid, AlreadyReturned, ConstraintViolation,
                             CopyNotFound, NotFoundError)
from tests.conftest import START


@pytest.fixture
def rental(service, catalog):
    return service.commit_rental(catalog.ana.id, [catalog.copies['BC-1'].id],
                                 catalog.clerk_id)[0]


@pytest.mark.parametrize('as_of, expected', [
    (START, 0),
    (START + timedelta(days=3), 0),
    (datetime(2024, 3, 4, 23, 59, 59), 0),
    (datetime(2024, 3, 5, 0, 0, 1), 1),
    (datetime(2024, 3, 8, 9, 0, 0), 4),
])
def test_lateness_counts_calendar_days(service, rental, as_of, expected):
    assert service.compute_lateness(rental, as_of) == expected


def test_late_return_creates_an_unpaid_fine(service, catalog, rental, clock):
    clock.now = datetime(2024, 3, 8, 12, 0, 0)

    receipt = service.process_return(rental.id, catalog.clerk_id)

    assert receipt.late_days == 4
    assert receipt.fine.amount == Decimal('10.00')
    assert receipt.fine.late_days == 4
    assert receipt.fine.paid is False
    assert receipt.fine.paid_at is None
    assert receipt.rental.status == 'returned'
    assert receipt.rental.returned_at == clock.now
    assert receipt.rental.returned_by == catalog.clerk_id
    assert Copy.get_by_barcode('BC-1').state == 'available'
    assert Fine.get_all(catalog.ana.id, unpaid_only=True)[0].id == receipt.fine.id


def test_on_time_return_has_no_fine(service, catalog, rental, clock):
    clock.now = datetime(2024, 3, 4, 20, 0, 0)

    receipt = service.process_return(rental.id, catalog.clerk_id)

    assert receipt.late_days == 0
    assert receipt.fine is None
    assert Fine.get_by_rental(rental.id) is None


def test_fine_paid_at_the_counter(service, catalog, rental, clock):
    clock.advance(days=5)

    receipt = service.process_return(rental.id, catalog.clerk_id, pay_fine_now=True)

    assert receipt.fine.paid is True
    assert receipt.fine.paid_at == clock.now
    assert service.check_member_eligibility(catalog.ana.id)


def test_second_return_is_refused(service, catalog, rental, clock):
    clock.advance(days=1)
    service.process_return(rental.id, catalog.clerk_id)
    service.commit_rental(catalog.bob.id, [rental.copy_id], catalog.clerk_id)

    with pytest.raises(AlreadyReturned):
        service.process_return(rental.id, catalog.clerk_id)

    # the copy now belongs to bob's rental and was not put back on the shelf
    assert Copy.get_by_id(rental.copy_id).state == 'rented'
    assert Rental.get_by_id(rental.id).returned_at == START + timedelta(days=1)


def test_unknown_rental_is_not_found(service, catalog):
    with pytest.raises(NotFoundError):
        service.process_return(9999, catalog.clerk_id)


def test_find_active_rental_for_copy(service, catalog, rental):
    assert service.find_active_rental_for_copy(' BC-1 ').id == rental.id

    with pytest.raises(CopyNotFound):
        service.find_active_rental_for_copy('NOPE')
    with pytest.raises(NotFoundError):
        service.find_active_rental_for_copy('BC-2')


def test_quote_does_not_write(service, catalog, rental, clock):
    clock.advance(days=6)

    quote = service.quote_return(rental)

    assert quote.late_days == 3
    assert quote.fine_amount == Decimal('7.50')
    assert Rental.get_by_id(rental.id).is_active
    assert Fine.get_by_rental(rental.id) is None


def test_fine_uses_the_current_rate(service, catalog, rental, clock, settings):
    settings.config = replace(settings.config, fine_per_day=Decimal('1.00'))
    clock.advance(days=5)

    receipt = service.process_return(rental.id, catalog.clerk_id)

    assert receipt.fine.amount == Decimal('2.00')


def test_one_fine_per_rental(service, catalog, rental, clock):
    clock.advance(days=5)
    service.process_return(rental.id, catalog.clerk_id)

    with pytest.raises(ConstraintViolation):
        with db_errors():
            Fine.insert(rental.id, catalog.ana.id, 1, Decimal('2.50'), clock.now)


def test_pay_fine_twice(service, catalog, rental, clock):
    clock.advance(days=5)
    receipt = service.process_return(rental.id, catalog.clerk_id)

    fine = service.pay_fine(receipt.fine.id, catalog.clerk_id)
    assert fine.paid is True
    assert fine.paid_at == clock.now

    with pytest.raises(AlreadyPaid):
        service.pay_fine(receipt.fine.id, catalog.clerk_id)
    with pytest.raises(NotFoundError):
        service.pay_fine(9999, catalog.clerk_id)
