import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from jobtracker.config import get_settings

ALGORITHM = "HS256"


def create_token(claims: Dict[str, Any], expires_in: timedelta) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + expires_in
    to_encode = {**claims, "exp": expire, "jti": uuid.uuid4().hex}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad signature, malformed token or expiry."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None


def seconds_remaining(claims: Dict[str, Any]) -> int:
    exp = claims.get("exp")
    if exp is None:
        return 0
    return max(int(exp - datetime.now(timezone.utc).timestamp()), 0)
