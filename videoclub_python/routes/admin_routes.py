"""Settings, dashboard and report routes.

This module exposes the business settings, the dashboard figures, the
reports and the audit log.
"""
import logging

from flask import Blueprint, jsonify, session

from models.system_config import SystemConfig
from models.system_log import SystemLog
from models.user import User
from services.report_service import ReportService
from utils.decorators import login_required, role_required
from utils.http import arg_int, json_body

logger = logging.getLogger(__name__)

# Create admin blueprint
admin_bp = Blueprint('admin', __name__)


# ==================== Settings ====================

@admin_bp.route('/config', methods=['GET'])
@login_required
def get_config():
    return jsonify({'success': True, 'config': SystemConfig.get().to_dict()})


@admin_bp.route('/config', methods=['PUT'])
@login_required
@role_required('admin')
def update_config():
    """Update the rental settings.

    JSON body (any subset):
        default_rental_days, fine_per_day, max_active_rentals_per_member.

    New values apply to the next eligibility check or rental.
    """
    config = SystemConfig.update(json_body())
    logger.info(f"Settings updated: {config.to_dict()}")
    SystemLog.add('Settings Updated', f'New settings: {config.to_dict()}',
                  'admin', session.get('user_id'))
    return jsonify({'success': True, 'config': config.to_dict()})


# ==================== Dashboard & Reports ====================

@admin_bp.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    """Counters, overdue rentals and the last week's rental activity."""
    return jsonify({'success': True, 'dashboard': ReportService().dashboard()})


@admin_bp.route('/reports', methods=['GET'])
@login_required
def reports():
    """Top movies and fine totals."""
    return jsonify({'success': True, 'report': ReportService().report()})


# ==================== Staff & Audit ====================

@admin_bp.route('/users', methods=['GET'])
@login_required
@role_required('admin')
def list_users():
    return jsonify({'success': True, 'users': [u.to_dict() for u in User.get_all()]})


@admin_bp.route('/logs', methods=['GET'])
@login_required
@role_required('admin')
def recent_logs():
    """Recent audit entries.

    Query params:
        limit: Maximum entries (default 50).
    """
    limit = arg_int('limit') or 50
    return jsonify({'success': True, 'logs': SystemLog.get_recent(limit)})
