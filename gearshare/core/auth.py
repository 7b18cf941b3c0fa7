import logging
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature
from gearshare.configs import SEED
from gearshare.core.models import User
from gearshare.core.workflow import Actor

logger = logging.getLogger(__name__)

SERIALIZER = None  # Will be initialized lazily
COOKIE_TTL = 604800

def _get_serializer():
    """Get or initialize the SERIALIZER lazily."""
    global SERIALIZER
    if SERIALIZER is None:
        SERIALIZER = URLSafeTimedSerializer(SEED, salt="auth-cookie")
    return SERIALIZER

def create_session_cookie(user_id: str) -> str:
    """Returns a signed session token for `user_id`.

    Tokens are minted by the sign-in service in front of GearShare (or
    by `scripts/register_user.py`); GearShare only verifies them.
    """
    return _get_serializer().dumps({"user_id": user_id})

def verify_session_cookie(session) -> Optional[str]:
    """Returns the user id carried by a valid, unexpired token."""
    if not session:
        return None
    try:
        data = _get_serializer().loads(session, max_age=COOKIE_TTL)
    except BadSignature:
        return None
    if isinstance(data, dict):
        return data.get("user_id")
    return None

def resolve_actor(db, session) -> Optional[Actor]:
    """Maps a session token to the acting user and their role."""
    user_id = verify_session_cookie(session)
    if not user_id:
        return None
    user = db.get(User, user_id)
    if not user:
        logger.warning(f"Valid session for unknown user {user_id}")
        return None
    return Actor(user.user_id, user.role)
