from flask import Blueprint, request, session, g, jsonify
from paperflow.extensions import db
from paperflow.services.auth_service import authenticate_user
from paperflow.models.user import User  # Import User model for the DB check

auth_bp = Blueprint("auth", __name__)

@auth_bp.before_app_request
def load_logged_in_user():
    user_id = session.get('user_id')

    if user_id is None:
        g.user = None
    else:
        # Fetch the user from the DB to ensure they still exist
        user = db.session.get(User, user_id)

        # If user was deleted, invalidate session immediately
        if user is None:
            session.clear()
            g.user = None
        else:
            g.user = user

@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    username = data.get("username")
    password = data.get("password")

    user = authenticate_user(username, password)

    if not user:
        return jsonify({"error": "invalid_credentials", "message": "Invalid username or password"}), 401

    # --- SESSION SETUP ---
    # Only the id is trusted later; the role is re-read from the database
    session.clear()
    session["user_id"] = user.id
    session["username"] = user.username

    return jsonify({"id": user.id, "username": user.username, "role": user.role})

@auth_bp.route("/logout")
def logout():
    session.clear()
    return jsonify({"success": True})
