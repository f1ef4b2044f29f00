"""Committing rentals."""
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from models.category import Category
from models.database import get_db
from models.movie_copy import Copy
from models.rental import Rental
from models.system_log import SystemLog
from services.errors import (ConflictDuringCommit, CopyNotFound, LimitExceeded,
                             MemberIneligible, Unavailable, ValidationError)
from services.rental_service import RentalService
from tests.conftest import START


def test_rent_single_copy(service, catalog):
    copy = catalog.copies['BC-1']

    rentals = service.commit_rental(catalog.ana.id, {copy.id}, catalog.clerk_id)

    assert len(rentals) == 1
    rental = rentals[0]
    assert rental.status == 'active'
    assert rental.member_id == catalog.ana.id
    assert rental.copy_id == copy.id
    assert rental.rented_at == START
    assert rental.due_at == START + timedelta(days=3)
    assert rental.daily_rate == Decimal('2.50')
    assert rental.rented_by == catalog.clerk_id
    assert rental.returned_at is None
    assert Copy.get_by_barcode('BC-1').state == 'rented'


def test_rentals_come_back_ordered_by_copy_id(service, catalog):
    ids = [catalog.copies['BC-3'].id, catalog.copies['BC-1'].id, catalog.copies['BC-2'].id]

    rentals = service.commit_rental(catalog.ana.id, ids, catalog.clerk_id)

    assert [r.copy_id for r in rentals] == sorted(ids)


def test_daily_rate_is_fixed_at_rental_time(service, catalog):
    rental = service.commit_rental(catalog.ana.id, [catalog.copies['BC-1'].id],
                                   catalog.clerk_id)[0]

    Category.upsert_many([{'id': catalog.general.id, 'name': 'General',
                           'daily_price': '4.00'}])

    assert Rental.get_by_id(rental.id).daily_rate == Decimal('2.50')
    later = service.commit_rental(catalog.bob.id, [catalog.copies['BC-2'].id],
                                  catalog.clerk_id)[0]
    assert later.daily_rate == Decimal('4.00')


def test_ineligible_member_cannot_commit(service, catalog):
    with pytest.raises(MemberIneligible) as excinfo:
        service.commit_rental(catalog.ivan.id, [catalog.copies['BC-1'].id], catalog.clerk_id)

    assert excinfo.value.eligibility.reason == 'inactive'
    assert Copy.get_by_barcode('BC-1').state == 'available'


def test_batch_is_all_or_nothing_on_conflict(service, catalog):
    service.commit_rental(catalog.bob.id, [catalog.copies['BC-2'].id], catalog.clerk_id)
    ids = [catalog.copies['BC-1'].id, catalog.copies['BC-2'].id, catalog.copies['BC-3'].id]

    with pytest.raises(ConflictDuringCommit) as excinfo:
        service.commit_rental(catalog.ana.id, ids, catalog.clerk_id)

    assert excinfo.value.copy_id == catalog.copies['BC-2'].id
    assert Copy.get_by_barcode('BC-1').state == 'available'
    assert Copy.get_by_barcode('BC-3').state == 'available'
    assert Rental.get_active_by_member(catalog.ana.id) == []


def test_unknown_copy_rolls_back_the_batch(service, catalog):
    with pytest.raises(CopyNotFound):
        service.commit_rental(catalog.ana.id, [catalog.copies['BC-1'].id, 9999],
                              catalog.clerk_id)

    assert Copy.get_by_barcode('BC-1').state == 'available'
    assert Rental.get_all() == []


def test_damaged_copy_conflicts(service, catalog):
    Copy.set_state(catalog.copies['BC-1'].id, 'lost')

    with pytest.raises(ConflictDuringCommit):
        service.commit_rental(catalog.ana.id, [catalog.copies['BC-1'].id], catalog.clerk_id)


def test_batch_over_the_limit_is_refused(service, catalog):
    ids = [catalog.copies[f'BC-{n}'].id for n in range(1, 7)]

    with pytest.raises(LimitExceeded):
        service.commit_rental(catalog.ana.id, ids, catalog.clerk_id)

    assert all(Copy.get_by_id(copy_id).state == 'available' for copy_id in ids)


def test_empty_batch_is_refused(service, catalog):
    with pytest.raises(ValidationError):
        service.commit_rental(catalog.ana.id, [], catalog.clerk_id)


def test_commit_is_written_to_the_audit_log(service, catalog):
    service.commit_rental(catalog.ana.id, [catalog.copies['BC-1'].id], catalog.clerk_id)

    entry = SystemLog.get_recent(1)[0]
    assert entry['action'] == 'Rental Created'
    assert entry['user_id'] == catalog.clerk_id


def test_concurrent_commits_for_the_same_copy(app, service, catalog, settings):
    copy_id = catalog.copies['BC-1'].id
    barrier = threading.Barrier(2)
    results = []

    def rent(member_id):
        with app.app_context():
            worker = RentalService(config_loader=settings, clock=datetime.now)
            barrier.wait()
            try:
                worker.commit_rental(member_id, [copy_id], catalog.clerk_id)
                results.append('ok')
            except ConflictDuringCommit:
                results.append('conflict')

    threads = [threading.Thread(target=rent, args=(m,)) for m in (catalog.ana.id, catalog.bob.id)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(results) == ['conflict', 'ok']
    assert Copy.get_by_id(copy_id).state == 'rented'
    assert len(Rental.get_all(status='active')) == 1


def test_failed_audit_write_rolls_back_the_rental(service, catalog):
    db = get_db()
    db.execute('DROP TABLE system_logs')
    db.commit()
    copy_id = catalog.copies['BC-1'].id

    with pytest.raises(Unavailable):
        service.commit_rental(catalog.ana.id, [copy_id], catalog.clerk_id)

    assert Copy.get_by_id(copy_id).state == 'available'
    assert Rental.count_active_by_member(catalog.ana.id) == 0


def test_concurrent_commits_respect_the_member_limit(app, service, catalog, settings):
    settings.config = replace(settings.config, max_active_rentals_per_member=1)
    barrier = threading.Barrier(2)
    results = []

    def rent(barcode):
        with app.app_context():
            worker = RentalService(config_loader=settings, clock=datetime.now)
            barrier.wait()
            try:
                worker.commit_rental(catalog.ana.id, [catalog.copies[barcode].id],
                                     catalog.clerk_id)
                results.append('ok')
            except (MemberIneligible, LimitExceeded):
                results.append('refused')

    threads = [threading.Thread(target=rent, args=(b,)) for b in ('BC-1', 'BC-2')]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(results) == ['ok', 'refused']
    assert Rental.count_active_by_member(catalog.ana.id) == 1
