"""Rental lifecycle service.

Single owner of the counter rules: member eligibility, cart validation,
creating rentals, processing returns, lateness and fines. Every screen
(rental, return, members, dashboard, reports) goes through this class
instead of counting active rentals or late days on its own.

Writes that move a copy or a rental between states use conditional
updates (``UPDATE ... WHERE state = ?``) inside one SQLite transaction, so
two terminals racing for the same copy or rental cannot both win.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from models.category import Category
from models.database import db_errors, get_db
from models.fine import Fine
from models.member import Member
from models.movie import Movie
from models.movie_copy import AVAILABLE, RENTED, Copy
from models.rental import Rental
from models.system_config import RentalConfig, SystemConfig
from models.system_log import SystemLog
from services.errors import (AlreadyPaid, AlreadyReturned, ConflictDuringCommit,
                             CopyNotFound, CopyUnavailable, DuplicateInCart,
                             LimitExceeded, MemberIneligible, NotFoundError,
                             RentalError, ValidationError)
from utils.money import money_str, to_money

logger = logging.getLogger(__name__)

INACTIVE = 'inactive'
UNPAID_FINES = 'unpaid_fines'
LIMIT_REACHED = 'limit_reached'


@dataclass(frozen=True)
class Eligibility:
    """Result of the eligibility checks; truthy when the member may rent."""

    eligible: bool
    reason: Optional[str] = None
    args: Tuple[int, ...] = ()

    @classmethod
    def ok(cls) -> 'Eligibility':
        return cls(True)

    @classmethod
    def ineligible(cls, reason: str, *args: int) -> 'Eligibility':
        return cls(False, reason, tuple(args))

    def __bool__(self) -> bool:
        return self.eligible

    def to_dict(self) -> Dict:
        return {'eligible': self.eligible, 'reason': self.reason, 'args': list(self.args)}


@dataclass
class CartLine:
    copy: Copy
    movie_title: str
    category_name: str
    daily_rate: Decimal
    line_total: Decimal

    def to_dict(self) -> Dict:
        return {
            'copy': self.copy.to_dict(),
            'movie_title': self.movie_title,
            'category_name': self.category_name,
            'daily_rate': money_str(self.daily_rate),
            'line_total': money_str(self.line_total),
        }


@dataclass
class CartOutcome:
    """Copies accepted for a member's cart and the barcodes turned away.

    Nothing is reserved: the accepted copies must be re-validated by
    ``commit_rental``.
    """

    member_id: int
    lines: List[CartLine] = field(default_factory=list)
    rejected: List[Tuple[str, RentalError]] = field(default_factory=list)

    @property
    def copy_ids(self) -> List[int]:
        return [line.copy.id for line in self.lines]

    @property
    def total(self) -> Decimal:
        return to_money(sum((line.line_total for line in self.lines), Decimal('0')))

    def to_dict(self) -> Dict:
        return {
            'member_id': self.member_id,
            'lines': [line.to_dict() for line in self.lines],
            'rejected': [
                {'barcode': barcode, **error.to_dict()} for barcode, error in self.rejected
            ],
            'total': money_str(self.total),
        }


@dataclass
class ReturnQuote:
    """What a return would cost if processed at ``as_of``."""

    rental: Rental
    late_days: int
    fine_amount: Decimal

    def to_dict(self) -> Dict:
        return {
            'rental': self.rental.to_dict(),
            'late_days': self.late_days,
            'fine_amount': money_str(self.fine_amount),
        }


@dataclass
class ReturnReceipt:
    rental: Rental
    late_days: int
    fine: Optional[Fine] = None

    def to_dict(self) -> Dict:
        return {
            'rental': self.rental.to_dict(),
            'late_days': self.late_days,
            'fine': self.fine.to_dict() if self.fine else None,
        }


class RentalService:
    """Rental desk operations.

    Args:
        config_loader: Returns the current ``RentalConfig``; read on every
            check so setting changes apply to the next call.
        clock: Returns the current time.
    """

    def __init__(self, config_loader: Callable[[], RentalConfig] = SystemConfig.get,
                 clock: Callable[[], datetime] = datetime.now):
        self.config_loader = config_loader
        self.clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit everything written inside the block, or nothing.

        The write lock is taken up front, so counts read inside the block
        cannot change before the commit.
        """
        db = get_db()
        try:
            with db_errors():
                if not db.in_transaction:
                    db.execute('BEGIN IMMEDIATE')
                yield
                db.commit()
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def _require_member(member_id: int) -> Member:
        member = Member.get_by_id(member_id)
        if not member:
            raise NotFoundError(f'Member not found: {member_id}', member_id=member_id)
        return member

    # ==================== Eligibility ====================

    @db_errors()
    def check_member_eligibility(self, member_id: int,
                                 config: Optional[RentalConfig] = None) -> Eligibility:
        """Run the rental checks for a member, stopping at the first failure.

        Raises:
            NotFoundError: The member does not exist.
        """
        member = self._require_member(member_id)
        if not member.active:
            return Eligibility.ineligible(INACTIVE)

        unpaid = Fine.count_unpaid_by_member(member_id)
        if unpaid > 0:
            return Eligibility.ineligible(UNPAID_FINES, unpaid)

        config = config or self.config_loader()
        active = Rental.count_active_by_member(member_id)
        if active >= config.max_active_rentals_per_member:
            return Eligibility.ineligible(LIMIT_REACHED, active,
                                          config.max_active_rentals_per_member)
        return Eligibility.ok()

    @db_errors()
    def member_summary(self, member_id: int) -> Dict[str, int]:
        """Active rental and unpaid fine counts for the member list."""
        return {
            'active_rentals': Rental.count_active_by_member(member_id),
            'unpaid_fines': Fine.count_unpaid_by_member(member_id),
        }

    # ==================== Renting ====================

    @db_errors()
    def reserve_copies(self, member_id: int, barcodes: Iterable[str]) -> CartOutcome:
        """Validate scanned barcodes for a member's cart, in scan order.

        Each barcode is accepted or rejected on its own; a rejected barcode
        does not stop the rest. No copy changes state.

        Raises:
            NotFoundError: The member does not exist.
        """
        self._require_member(member_id)
        config = self.config_loader()
        active = Rental.count_active_by_member(member_id)
        outcome = CartOutcome(member_id=member_id)
        accepted = set()

        for raw in barcodes:
            barcode = (raw or '').strip()
            try:
                copy = Copy.get_by_barcode(barcode)
                if not copy:
                    raise CopyNotFound(barcode=barcode)
                if barcode in accepted:
                    raise DuplicateInCart(barcode)
                if not copy.is_available:
                    raise CopyUnavailable(barcode, copy.state)
                if active + len(outcome.lines) + 1 > config.max_active_rentals_per_member:
                    raise LimitExceeded(active + len(outcome.lines),
                                        config.max_active_rentals_per_member)
            except (NotFoundError, ValidationError) as e:
                outcome.rejected.append((barcode, e))
                continue

            movie = Movie.get_by_id(copy.movie_id)
            category = Category.get_for_movie(copy.movie_id)
            outcome.lines.append(CartLine(
                copy=copy,
                movie_title=movie.title,
                category_name=category.name,
                daily_rate=category.daily_price,
                line_total=to_money(category.daily_price * config.default_rental_days),
            ))
            accepted.add(barcode)

        return outcome

    @db_errors()
    def commit_rental(self, member_id: int, copy_ids: Iterable[int],
                      employee_id: Optional[int]) -> List[Rental]:
        """Create one rental per copy, all or nothing.

        Eligibility and copy availability are checked again here; the cart
        built by ``reserve_copies`` may be stale.

        Returns:
            The new rentals, ordered by copy id.

        Raises:
            MemberIneligible: The member failed the eligibility checks.
            LimitExceeded: The batch would take the member over the limit.
            CopyNotFound: A copy id does not exist.
            ConflictDuringCommit: A copy was no longer available.
        """
        ids = sorted(set(copy_ids))
        if not ids:
            raise ValidationError('No copies selected')

        config = self.config_loader()
        now = self.clock()
        due_at = now + timedelta(days=config.default_rental_days)
        rental_ids = []

        with self._transaction():
            # Counted under the write lock; another terminal renting for
            # the same member waits until this batch commits.
            eligibility = self.check_member_eligibility(member_id, config)
            if not eligibility:
                raise MemberIneligible(eligibility)

            active = Rental.count_active_by_member(member_id)
            if active + len(ids) > config.max_active_rentals_per_member:
                raise LimitExceeded(active, config.max_active_rentals_per_member)

            for copy_id in ids:
                if not Copy.transition(copy_id, AVAILABLE, RENTED):
                    if not Copy.get_by_id(copy_id):
                        raise CopyNotFound(copy_id=copy_id)
                    raise ConflictDuringCommit(copy_id)

                copy = Copy.get_by_id(copy_id)
                category = Category.get_for_movie(copy.movie_id)
                rental_ids.append(Rental.insert(
                    member_id=member_id,
                    copy_id=copy_id,
                    rented_at=now,
                    due_at=due_at,
                    daily_rate=category.daily_price,
                    rented_by=employee_id,
                ))

            SystemLog.add(
                'Rental Created',
                f'Member {member_id} rented copies {ids}, due {due_at:%Y-%m-%d}',
                'info',
                employee_id,
                commit=False
            )

        logger.info(f"Member {member_id} rented {len(rental_ids)} copies "
                    f"(employee {employee_id}, due {due_at:%Y-%m-%d})")
        return [Rental.get_by_id(rental_id) for rental_id in rental_ids]

    # ==================== Returning ====================

    @db_errors()
    def find_active_rental_for_copy(self, barcode: str) -> Rental:
        """Entry point of a return: the open rental holding this copy.

        Raises:
            CopyNotFound: No copy has this barcode.
            NotFoundError: The copy is not currently rented.
        """
        copy = Copy.get_by_barcode(barcode)
        if not copy:
            raise CopyNotFound(barcode=barcode)
        rental = Rental.get_active_by_copy(copy.id)
        if not rental:
            raise NotFoundError(f'Copy {copy.barcode} is not currently rented',
                                barcode=copy.barcode)
        return rental

    def compute_lateness(self, rental: Rental, as_of: Optional[datetime] = None) -> int:
        """Whole calendar days between the due date and ``as_of``, never negative.

        Time of day is ignored, so anything returned on the due date is on time.
        """
        as_of = as_of or self.clock()
        return max(0, (as_of.date() - rental.due_at.date()).days)

    @db_errors()
    def quote_return(self, rental: Rental, as_of: Optional[datetime] = None) -> ReturnQuote:
        """Late days and the fine a return would produce, without writing anything."""
        late_days = self.compute_lateness(rental, as_of)
        config = self.config_loader()
        return ReturnQuote(rental, late_days, to_money(config.fine_per_day * late_days))

    @db_errors()
    def process_return(self, rental_id: int, employee_id: Optional[int],
                       pay_fine_now: bool = False) -> ReturnReceipt:
        """Close a rental, put the copy back on the shelf and fine lateness.

        Raises:
            NotFoundError: The rental does not exist.
            AlreadyReturned: The rental was already closed.
            ConflictDuringCommit: The copy was not in the rented state.
        """
        config = self.config_loader()
        now = self.clock()
        fine_id = None

        with self._transaction():
            if not Rental.mark_returned(rental_id, now, employee_id):
                if not Rental.get_by_id(rental_id):
                    raise NotFoundError(f'Rental not found: {rental_id}', rental_id=rental_id)
                raise AlreadyReturned(rental_id)

            rental = Rental.get_by_id(rental_id)
            if not Copy.transition(rental.copy_id, RENTED, AVAILABLE):
                raise ConflictDuringCommit(
                    rental.copy_id, f'Copy {rental.copy_id} was not marked as rented'
                )

            late_days = self.compute_lateness(rental, now)
            details = f'Rental {rental_id} returned ({late_days} day(s) late'
            if late_days > 0:
                amount = to_money(config.fine_per_day * late_days)
                fine_id = Fine.insert(
                    rental_id=rental_id,
                    member_id=rental.member_id,
                    late_days=late_days,
                    amount=amount,
                    created_at=now,
                    paid=pay_fine_now,
                    paid_at=now if pay_fine_now else None,
                )
                details += f', fine {money_str(amount)} {"paid" if pay_fine_now else "pending"}'
            details += ')'
            SystemLog.add('Rental Returned', details, 'info', employee_id, commit=False)

        logger.info(details)
        fine = Fine.get_by_id(fine_id) if fine_id else None
        return ReturnReceipt(rental=rental, late_days=late_days, fine=fine)

    # ==================== Fines ====================

    @db_errors()
    def pay_fine(self, fine_id: int, employee_id: Optional[int] = None) -> Fine:
        """Mark a fine as paid now.

        Raises:
            NotFoundError: The fine does not exist.
            AlreadyPaid: The fine was already paid.
        """
        now = self.clock()
        with self._transaction():
            if not Fine.mark_paid(fine_id, now):
                if not Fine.get_by_id(fine_id):
                    raise NotFoundError(f'Fine not found: {fine_id}', fine_id=fine_id)
                raise AlreadyPaid(fine_id)

            fine = Fine.get_by_id(fine_id)
            SystemLog.add('Fine Paid', f'Fine {fine_id} for rental {fine.rental_id} paid',
                          'info', employee_id, commit=False)

        logger.info(f"Fine {fine_id} paid ({money_str(fine.amount)})")
        return fine
