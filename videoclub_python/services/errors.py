"""Error types raised by the rental service and the persistence layer.

Every error carries a short machine-readable ``code`` and the HTTP status
the API answers with. Nothing here is retried automatically; errors are
raised to the immediate caller.
"""
from typing import Any, Dict, Optional


class RentalError(Exception):
    """Base class for all video club business and persistence errors."""

    code = 'rental_error'
    status_code = 400

    def __init__(self, message: Optional[str] = None, **details: Any):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'success': False,
            'error': self.code,
            'message': self.message,
        }
        if self.details:
            payload['details'] = self.details
        return payload


# ==================== Missing entities ====================

class NotFoundError(RentalError):
    code = 'not_found'
    status_code = 404


class CopyNotFound(NotFoundError):
    code = 'copy_not_found'

    def __init__(self, barcode=None, copy_id=None):
        ref = barcode if barcode is not None else copy_id
        super().__init__(f'Copy not found: {ref}', barcode=barcode, copy_id=copy_id)


# ==================== Rule violations ====================

class ValidationError(RentalError):
    code = 'validation_error'
    status_code = 422


class MemberIneligible(ValidationError):
    """The member failed the eligibility checks."""

    code = 'member_ineligible'

    def __init__(self, eligibility):
        self.eligibility = eligibility
        super().__init__(
            f'Member cannot rent: {eligibility.reason}',
            reason=eligibility.reason,
            args=list(eligibility.args)
        )


class CopyUnavailable(ValidationError):
    code = 'copy_unavailable'

    def __init__(self, barcode: str, state: str):
        self.state = state
        super().__init__(f'Copy {barcode} is not available (state: {state})',
                         barcode=barcode, state=state)


class DuplicateInCart(ValidationError):
    code = 'duplicate_in_cart'

    def __init__(self, barcode: str):
        super().__init__(f'Copy {barcode} is already in the cart', barcode=barcode)


class LimitExceeded(ValidationError):
    code = 'limit_exceeded'

    def __init__(self, current: int, maximum: int):
        self.current = current
        self.maximum = maximum
        super().__init__('Member rental limit would be exceeded',
                         current=current, max=maximum)


# ==================== State races and repeated transitions ====================

class ConflictDuringCommit(RentalError):
    """State changed between the check and the write."""

    code = 'conflict'
    status_code = 409

    def __init__(self, copy_id: int, message: Optional[str] = None):
        self.copy_id = copy_id
        super().__init__(message or f'Copy {copy_id} changed state during commit',
                         copy_id=copy_id)


class AlreadyReturned(RentalError):
    code = 'already_returned'
    status_code = 409

    def __init__(self, rental_id: int):
        super().__init__(f'Rental {rental_id} was already returned', rental_id=rental_id)


class AlreadyPaid(RentalError):
    code = 'already_paid'
    status_code = 409

    def __init__(self, fine_id: int):
        super().__init__(f'Fine {fine_id} was already paid', fine_id=fine_id)


# ==================== Persistence ====================

class ConstraintViolation(RentalError):
    code = 'constraint_violation'
    status_code = 409


class Unavailable(RentalError):
    """Database I/O failure."""

    code = 'unavailable'
    status_code = 503
