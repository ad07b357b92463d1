from models import db
from models.user import User
from services.errors import ValidationError, NotFound
from utils.audit import log_event

PROFILE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "userName": "user_name",
    "email": "email",
    "photo": "photo",
}


def find_by_external_id(external_id: str):
    return User.query.filter_by(external_id=external_id).first()


def resolve_or_create(external_id: str) -> User:
    """
    Look up a user by auth-provider identity, inserting a bare stub when the
    provider's own provisioning has not reached us yet. Flushes, never commits.
    """
    external_id = (external_id or "").strip()
    if not external_id:
        raise ValidationError("User reference is required")

    user = find_by_external_id(external_id)
    if user:
        return user

    user = User(external_id=external_id)
    db.session.add(user)
    db.session.flush()
    return user


def upsert_profile(data: dict):
    """Returns (user, created)."""
    external_id = (data.get("externalId") or "").strip()
    if not external_id:
        raise ValidationError("externalId is required")

    user = find_by_external_id(external_id)
    created = user is None
    if created:
        user = User(external_id=external_id)
        db.session.add(user)

    for key, attr in PROFILE_FIELDS.items():
        if key in data:
            value = data[key]
            setattr(user, attr, value.strip() if isinstance(value, str) and value.strip() else None)

    db.session.commit()
    log_event("USER_UPSERT", user_id=user.id, entity="user", entity_id=user.id, metadata={"created": created})
    return user, created


def list_users(external_id=None):
    q = User.query
    if external_id:
        q = q.filter_by(external_id=external_id)
    return q.order_by(User.created_at.desc(), User.id.desc()).all()


def set_paid(user_id: int, is_paid) -> User:
    if not isinstance(is_paid, bool):
        raise ValidationError("isPaid must be true or false")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    previous = user.is_paid
    user.is_paid = is_paid
    db.session.commit()

    log_event("USER_UPDATE", user_id=user.id, entity="user", entity_id=user.id,
              metadata={"isPaid": {"from": previous, "to": is_paid}})
    return user
