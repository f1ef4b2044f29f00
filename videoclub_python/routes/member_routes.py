"""Member management routes.

This module handles listing, searching, registering and editing members,
and the counter lookup that checks whether a member may rent.
"""
from flask import Blueprint, jsonify, request

from models.member import Member
from services.errors import NotFoundError
from services.rental_service import RentalService
from utils.decorators import login_required
from utils.http import json_body

# Create members blueprint
members_bp = Blueprint('members', __name__)


def _member_payload(member: Member, service: RentalService) -> dict:
    payload = member.to_dict()
    payload.update(service.member_summary(member.id))
    return payload


@members_bp.route('', methods=['GET'])
@login_required
def list_members():
    """List members with their active rental and unpaid fine counts.

    Query params:
        q: Filter by first name, last name, DNI or member number.
    """
    service = RentalService()
    members = Member.get_all(request.args.get('q'))
    return jsonify({
        'success': True,
        'members': [_member_payload(member, service) for member in members]
    })


@members_bp.route('/<int:member_id>', methods=['GET'])
@login_required
def get_member(member_id: int):
    member = Member.get_by_id(member_id)
    if not member:
        raise NotFoundError(f'Member not found: {member_id}')
    return jsonify({'success': True, 'member': _member_payload(member, RentalService())})


@members_bp.route('', methods=['POST'])
@login_required
def create_member():
    """Register a new member; the member number is generated."""
    member = Member.create(json_body())
    return jsonify({'success': True, 'member': member.to_dict()}), 201


@members_bp.route('/<int:member_id>', methods=['PUT'])
@login_required
def update_member(member_id: int):
    member = Member.update(member_id, json_body())
    return jsonify({'success': True, 'member': member.to_dict()})


@members_bp.route('/lookup/<code>', methods=['GET'])
@login_required
def lookup_member(code: str):
    """Find a member by member number or DNI and report eligibility.

    Used by the rental screen before scanning copies.
    """
    member = Member.find_by_code(code)
    if not member:
        raise NotFoundError('Member not found', code=code)

    service = RentalService()
    return jsonify({
        'success': True,
        'member': _member_payload(member, service),
        'eligibility': service.check_member_eligibility(member.id).to_dict()
    })


@members_bp.route('/<int:member_id>/eligibility', methods=['GET'])
@login_required
def member_eligibility(member_id: int):
    eligibility = RentalService().check_member_eligibility(member_id)
    return jsonify({'success': True, 'eligibility': eligibility.to_dict()})
