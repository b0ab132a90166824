from flask import g, session

from paperflow.extensions import db
from paperflow.models.user import User
from paperflow.services.status_transitions import Role
from paperflow.services.workflow_errors import Unauthorized


def current_caller_id():
    """
    The authenticated caller, as stored by the login route in the signed session.
    """
    user = g.get("user")
    if user is not None:
        return user.id
    return session.get("user_id")


def current_role(caller_id) -> Role:
    """
    Resolve the caller's role from the users table.

    This is the only source of truth for authorization; a role sent by
    the client is a hint and is compared against this value.
    """
    if caller_id is None:
        raise Unauthorized("Not signed in")

    user = db.session.get(User, caller_id)
    if user is None:
        raise Unauthorized("Unknown caller")

    role = Role.parse(user.role)
    if role is None:
        raise Unauthorized(f"Unrecognised role '{user.role}'")
    return role


def require_role(caller_id, *allowed: Role) -> Role:
    role = current_role(caller_id)
    if role not in allowed:
        raise Unauthorized(
            f"Role '{role.value}' may not perform this action",
            role=role.value,
        )
    return role
