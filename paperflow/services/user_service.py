from paperflow.extensions import db
from paperflow.models.user import User
from paperflow.services.status_transitions import Role

def create_user(username, password, role):
    username = (username or "").strip()
    if not username or not password:
        raise ValueError("Username and password are required")

    parsed = Role.parse(role)
    if parsed is None:
        raise ValueError(f"Unknown role '{role}'")

    # Check if user already exists
    if User.query.filter_by(username=username).first():
        raise ValueError("Username already exists")

    new_user = User(username=username, role=parsed.value)
    new_user.set_password(password)

    db.session.add(new_user)
    db.session.commit()
    return new_user


def get_all_users():
    return User.query.order_by(User.username).all()
