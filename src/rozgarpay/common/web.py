"""Request helpers shared by the JSON controllers."""

from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Iterable, Optional

from flask import request, session

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..users.model import Actor
from .datetime_utils import parse_iso_date
from .permissions import require_role
from .validators import parse_int


def current_actor() -> Actor:
    """Actor from the session filled in by the identity provider."""
    if "user_id" not in session:
        raise AuthorizationError("Login required")
    try:
        role = Role(session.get("role"))
    except ValueError:
        raise AuthorizationError("Unknown role")
    company_id = session.get("company_id")
    return Actor(
        user_id=int(session["user_id"]),
        company_id=int(company_id) if company_id is not None else None,
        role=role,
    )


def roles_required(roles: Iterable[Role]):
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            require_role(current_actor(), allowed)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_date(value, field_name: str) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return parse_iso_date(str(value))
    except ValidationError:
        raise ValidationError(f"Invalid {field_name} (expected YYYY-MM-DD)", field=field_name)


def optional_int(value, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    return parse_int(value, field_name)


def company_id_of(actor: Actor) -> int:
    if actor.company_id is None:
        raise AuthorizationError("You are not assigned to a company")
    return int(actor.company_id)
