from __future__ import annotations

import logging
from typing import Optional

from flask import current_app
from sqlalchemy import select

from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..models import Role, User, UserRole
from ..security import hash_client_key, verify_client_key

logger = logging.getLogger(__name__)


def grant_role(user: User, role: Role) -> bool:
    """Returns False when the user already had the role."""
    if role.value in user.role_names:
        return False
    user.roles.append(UserRole(role=role))
    return True


def register_user(name: str, client_hash: str, email: Optional[str] = None) -> User:
    name = (name or "").strip()
    email = (email or "").strip() or None
    client_hash = (client_hash or "").strip().lower()

    if not name or not client_hash:
        raise ValidationError("Name and passphrase are required.")

    if db.session.scalars(select(User).where(User.name == name)).first():
        raise Conflict("That name is already registered.")

    if email and db.session.scalars(select(User).where(User.email == email)).first():
        raise Conflict("That email is already registered.")

    user = User(name=name, email=email, passkey_hash=hash_client_key(client_hash))
    grant_role(user, Role.EMPLOYEE)

    admin_name = (current_app.config.get("SANTA_ADMIN_NAME") or "").strip()
    if admin_name and name == admin_name:
        grant_role(user, Role.ADMIN)

    db.session.add(user)
    db.session.commit()
    logger.info("Registered user %s", user.id)
    return user


def authenticate(name: str, client_hash: str) -> Optional[User]:
    name = (name or "").strip()
    client_hash = (client_hash or "").strip().lower()
    if not name or not client_hash:
        return None

    user = db.session.scalars(select(User).where(User.name == name)).first()
    if user and verify_client_key(client_hash, user.passkey_hash):
        return user
    return None


def grant_role_by_name(name: str, role: Role) -> bool:
    user = db.session.scalars(select(User).where(User.name == name)).first()
    if user is None:
        raise NotFound(f"No such user: {name}")
    changed = grant_role(user, role)
    db.session.commit()
    return changed
