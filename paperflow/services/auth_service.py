import logging

from paperflow.models.user import User
from paperflow.services.status_transitions import Role

logger = logging.getLogger(__name__)


def authenticate_user(username: str, password: str):
    """
    Check a username/password pair.

    Accounts whose stored role is not part of the workflow cannot sign in,
    since every action would be refused for them anyway.
    """
    username = (username or "").strip()
    if not username or not password:
        return None

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        logger.warning("Failed sign-in for '%s'", username)
        return None

    if Role.parse(user.role) is None:
        logger.warning("Sign-in refused for '%s': unknown role '%s'", username, user.role)
        return None

    return user
