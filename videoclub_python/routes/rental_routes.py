"""Rental desk routes.

This module handles the counter workflows: building a cart, committing a
rental, looking up and processing returns, and collecting fines. All
rules live in RentalService; these views only translate JSON.
"""
from flask import Blueprint, jsonify, request

from extensions import broadcast
from models.fine import Fine
from models.member import Member
from models.movie import Movie
from models.movie_copy import Copy
from models.rental import Rental
from services.rental_service import RentalService
from utils.decorators import login_required
from utils.http import arg_int, current_user_id, int_list, json_body, require_int
from utils.money import money_str

# Create rentals blueprint
rentals_bp = Blueprint('rentals', __name__)


# ==================== Renting ====================

@rentals_bp.route('/rentals/cart', methods=['POST'])
@login_required
def validate_cart():
    """Validate scanned barcodes for a member.

    JSON body:
        member_id: Member renting.
        barcodes: Scanned barcodes, in scan order.

    Returns:
        JSON with accepted lines, rejected barcodes and the estimated total.
    """
    data = json_body()
    barcodes = data.get('barcodes') or []
    if not isinstance(barcodes, list):
        barcodes = [barcodes]

    service = RentalService()
    member_id = require_int(data, 'member_id')
    outcome = service.reserve_copies(member_id, [str(b) for b in barcodes])
    return jsonify({
        'success': True,
        'cart': outcome.to_dict(),
        'eligibility': service.check_member_eligibility(member_id).to_dict()
    })


@rentals_bp.route('/rentals', methods=['POST'])
@login_required
def create_rentals():
    """Commit a rental for a member.

    JSON body:
        member_id: Member renting.
        copy_ids: Copies to rent.
    """
    data = json_body()
    rentals = RentalService().commit_rental(
        require_int(data, 'member_id'),
        int_list(data, 'copy_ids'),
        current_user_id()
    )
    broadcast('inventory_changed', {
        'copy_ids': [rental.copy_id for rental in rentals],
        'state': 'rented'
    })
    return jsonify({
        'success': True,
        'rentals': [rental.to_dict() for rental in rentals]
    }), 201


@rentals_bp.route('/rentals', methods=['GET'])
@login_required
def list_rentals():
    """List rentals, newest first.

    Query params:
        status: active or returned.
        member_id: Only this member's rentals.
    """
    rentals = Rental.get_all(request.args.get('status'), arg_int('member_id'))
    return jsonify({'success': True, 'rentals': [r.to_dict() for r in rentals]})


# ==================== Returns ====================

@rentals_bp.route('/returns/<barcode>', methods=['GET'])
@login_required
def quote_return(barcode: str):
    """Look up the open rental for a scanned copy and preview the fine."""
    service = RentalService()
    rental = service.find_active_rental_for_copy(barcode)
    quote = service.quote_return(rental)

    member = Member.get_by_id(rental.member_id)
    copy = Copy.get_by_id(rental.copy_id)
    movie = Movie.get_by_id(copy.movie_id)

    payload = quote.to_dict()
    payload['member'] = member.to_dict()
    payload['movie_title'] = movie.title
    payload['barcode'] = copy.barcode
    return jsonify({'success': True, 'return': payload})


@rentals_bp.route('/returns/<int:rental_id>', methods=['POST'])
@login_required
def process_return(rental_id: int):
    """Process a return.

    JSON body:
        pay_fine_now: Collect any fine at the counter.
    """
    data = json_body()
    receipt = RentalService().process_return(
        rental_id,
        current_user_id(),
        bool(data.get('pay_fine_now', False))
    )
    broadcast('inventory_changed', {
        'copy_ids': [receipt.rental.copy_id],
        'state': 'available'
    })

    if receipt.fine:
        status = 'collected' if receipt.fine.paid else 'pending'
        message = f'Return processed. Fine {status} ({money_str(receipt.fine.amount)}).'
    else:
        message = 'Return processed. No late charges.'

    return jsonify({'success': True, 'message': message, 'receipt': receipt.to_dict()})


# ==================== Fines ====================

@rentals_bp.route('/fines', methods=['GET'])
@login_required
def list_fines():
    """List fines, newest first.

    Query params:
        member_id: Only this member's fines.
        unpaid: 1 to list pending fines only.
    """
    unpaid_only = request.args.get('unpaid') in ('1', 'true', 'yes')
    fines = Fine.get_all(arg_int('member_id'), unpaid_only)
    return jsonify({'success': True, 'fines': [fine.to_dict() for fine in fines]})


@rentals_bp.route('/fines/<int:fine_id>/pay', methods=['POST'])
@login_required
def pay_fine(fine_id: int):
    fine = RentalService().pay_fine(fine_id, current_user_id())
    broadcast('fine_paid', {'fine_id': fine.id, 'member_id': fine.member_id})
    return jsonify({'success': True, 'fine': fine.to_dict()})
