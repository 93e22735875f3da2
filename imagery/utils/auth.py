import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Caller resolved from a verified bearer token."""
    user_id: uuid.UUID
    email: str | None = None
    name: str | None = None


def create_access_token(
    subject: str,
    secret: str,
    *,
    email: str | None = None,
    audience: str | None = "authenticated",
    expires_in: timedelta = timedelta(hours=1),
    algorithm: str = "HS256",
    extra: dict | None = None,
) -> str:
    to_encode = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_in}
    if email:
        to_encode["email"] = email
    if audience:
        to_encode["aud"] = audience
    if extra:
        to_encode.update(extra)
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, *, audience: str | None = None, algorithm: str = "HS256") -> Identity | None:
    """Verify a bearer token and return the identity it carries.

    Any verification failure yields None; callers decide whether that means
    guest access or a 401.
    """
    if not token or not isinstance(token, str):
        return None

    if token.startswith("Bearer "):
        token = token.split(" ", 1)[1]

    # Browser clients serialize a missing session as these literals
    if token in ("null", "undefined"):
        return None

    try:
        options = {"verify_aud": bool(audience)}
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience or None,
            options=options,
        )
    except ExpiredSignatureError:
        logger.info("Expired bearer token")
        return None
    except JWTClaimsError as e:
        logger.info(f"Bearer token claims rejected: {str(e)}")
        return None
    except JWTError as e:
        logger.info(f"Invalid bearer token: {str(e)}")
        return None

    subject = payload.get("sub")
    if subject is None:
        logger.error("Subject not found in token payload")
        return None

    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        logger.error(f"Token subject is not a user id: {str(subject)[:20]}")
        return None

    metadata = payload.get("user_metadata") or {}
    return Identity(
        user_id=user_id,
        email=payload.get("email"),
        name=metadata.get("full_name") if isinstance(metadata, dict) else None,
    )
