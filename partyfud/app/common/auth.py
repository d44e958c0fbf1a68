"""Session-based auth.

The session holds `user_id` and `user_type`; anonymous visitors keep their
cart in the session until they log in.
"""

from functools import wraps
from typing import Callable, TypeVar, Any

from flask import session
from partyfud.app.common.errors import abort_json
from partyfud.app.extensions import db
from partyfud.app.models import Account
from partyfud.modules.cart.storage import EVENT_DETAILS_KEY
from partyfud.modules.checkout.flow import CHECKOUT_KEY

F = TypeVar("F", bound=Callable[..., Any])


def current_account() -> Account | None:
    uid = session.get("user_id")
    if not uid:
        return None
    return db.session.get(Account, uid)


def start_session(account: Account) -> None:
    previous = session.get("user_id")
    if previous and previous != account.id:
        # checkout progress belongs to the account that started it
        session.pop(CHECKOUT_KEY, None)
        session.pop(EVENT_DETAILS_KEY, None)
    session["user_id"] = account.id
    session["user_type"] = account.type


def end_session() -> None:
    session.pop("user_id", None)
    session.pop("user_type", None)


def login_required(fn: F) -> F:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get("user_id"):
            abort_json(401, "unauthorized", "Authentication required")
        return fn(*args, **kwargs)

    return wrapper  # type: ignore


def role_required(*roles: str) -> Callable[[F], F]:
    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not session.get("user_id"):
                abort_json(401, "unauthorized", "Authentication required")
            if session.get("user_type") not in roles:
                abort_json(403, "forbidden", "You do not have access to this resource")
            return fn(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
