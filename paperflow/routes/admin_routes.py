# paperflow/routes/admin_routes.py
from flask import Blueprint, request, jsonify

from paperflow.utils.decorators import login_required, role_required
from paperflow.services.user_service import create_user, get_all_users


admin_bp = Blueprint("admin", __name__)


def _user_dict(user):
    return {"id": user.id, "username": user.username, "role": user.role}


# =========================
# USERS
# =========================

@admin_bp.route("/users", methods=["GET", "POST"])
@login_required
@role_required("admin")
def manage_users():
    if request.method == "POST":
        data = request.get_json(silent=True) or request.form
        username = data.get("username")
        password = data.get("password")
        role = data.get("role")

        try:
            user = create_user(username, password, role)
        except ValueError as e:
            return jsonify({"error": "invalid_user", "message": str(e)}), 400

        return jsonify(_user_dict(user)), 201

    return jsonify([_user_dict(u) for u in get_all_users()])
