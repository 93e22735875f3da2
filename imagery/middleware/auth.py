from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from imagery.database import get_db
from imagery.models.profile import Profile
from imagery.services.credits import ensure_profile
from imagery.utils.auth import Identity, decode_token
import logging

logger = logging.getLogger(__name__)

# Tokens come from the auth provider; the token URL only documents that in OpenAPI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def resolve_identity(request: Request, token: str | None) -> Identity | None:
    if not token:
        return None
    settings = request.app.state.settings
    return decode_token(
        token,
        settings.SECRET_KEY,
        audience=settings.AUTH_JWT_AUDIENCE or None,
        algorithm=settings.AUTH_JWT_ALGORITHM,
    )


async def get_optional_identity(request: Request, token: str | None = Depends(oauth2_scheme)) -> Identity | None:
    """Identity of the caller, or None for guests and unusable tokens."""
    return resolve_identity(request, token)


async def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    identity = resolve_identity(request, token)
    if identity is None:
        logger.info("Rejected request without a valid bearer token")
        raise credentials_exception

    return ensure_profile(db, identity)


async def get_current_admin(current_user: Profile = Depends(get_current_user)) -> Profile:
    if not current_user.is_admin:
        logger.warning(f"User {current_user.id} tried to reach an admin route")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user
