from flask import Blueprint, request, jsonify

from models.user import User
from security.rbac import require_admin
from services import users

users_bp = Blueprint("users", __name__, url_prefix="/users")

def user_json(u: User):
    if u is None:
        return None
    return {
        "id": u.id,
        "externalId": u.external_id,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "userName": u.user_name,
        "email": u.email,
        "photo": u.photo,
        "isPaid": u.is_paid,
    }


@users_bp.get("")
def list_users():
    rows = users.list_users(request.args.get("externalId"))
    return jsonify(users=[user_json(u) for u in rows]), 200


# Profile sync from the auth provider side (creates or updates)
@users_bp.post("")
def upsert_user():
    data = request.get_json(silent=True) or {}
    user, created = users.upsert_profile(data)
    return jsonify(user=user_json(user)), (201 if created else 200)


# ---------- ADMIN: payment status ----------
@users_bp.patch("/<int:user_id>")
@require_admin
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = users.set_paid(user_id, data.get("isPaid"))
    return jsonify(message="User updated successfully", user=user_json(user)), 200
