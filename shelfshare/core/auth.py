import logging
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature
from shelfshare.configs import SEED, TOKEN_TTL

logger = logging.getLogger(__name__)

SERIALIZER = None  # Will be initialized lazily


def _get_serializer():
    """Get or initialize the SERIALIZER lazily."""
    global SERIALIZER
    if SERIALIZER is None:
        SERIALIZER = URLSafeTimedSerializer(SEED, salt="auth-token")
    return SERIALIZER


def create_session_token(user_id: str, email: str = None) -> str:
    """Returns a signed token identifying `user_id`."""
    data = {"user_id": user_id}
    if email:
        data["email"] = email
    return _get_serializer().dumps(data)


def verify_session_token(token, max_age: int = None) -> Optional[dict]:
    """Returns the signed identity ({user_id, email?}) or None."""
    if not token:
        return None
    try:
        data = _get_serializer().loads(token, max_age=max_age or TOKEN_TTL)
    except BadSignature:
        # SignatureExpired is a subclass of BadSignature
        logger.info("Rejected invalid or expired session token")
        return None
    if not isinstance(data, dict) or not data.get("user_id"):
        return None
    return data


def get_authenticated_user_id(token) -> Optional[str]:
    data = verify_session_token(token)
    return data.get("user_id") if data else None


def token_from_request(authorization: Optional[str], session: Optional[str]) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return session
