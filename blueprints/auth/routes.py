"""
blueprints/auth/routes.py - Authentication Blueprint
Handles login, logout and the current session's identity.
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from extensions import bcrypt, db
from models import User
from policy import current_context

# Create blueprint
auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Log in with email and password (all roles)
    """
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    # Validate input
    if not email or not password:
        return jsonify({'success': False, 'error': 'email and password are required'}), 400

    user = db.session.execute(db.select(User).filter_by(email=email)).scalar_one_or_none()

    if user is None or not bcrypt.check_password_hash(user.password, password):
        return jsonify({'success': False, 'error': 'invalid email or password'}), 401

    login_user(user, remember=True)

    return jsonify({
        'success': True,
        'user': {'id': user.id, 'role': user.role, 'name': user.get_full_name()}
    })


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    """Identity and scope of the current session"""
    ctx = current_context()
    return jsonify({
        'success': True,
        'user': {
            'id': ctx.user_id,
            'role': ctx.role,
            'name': current_user.get_full_name(),
            'student_id': ctx.student_id,
            'teacher_id': ctx.teacher_id,
            'children_ids': sorted(ctx.children_ids),
        }
    })
