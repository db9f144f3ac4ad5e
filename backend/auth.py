from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List
from jose import JWTError, jwt
from fastapi import HTTPException, status, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from models import Viewer
from config import settings
from roles_utils import normalize_roles
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify JWT token and return payload"""
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        username: str = payload.get("sub")
        if username is None:
            return None
        return payload
    except JWTError:
        return None


def viewer_from_claims(payload: Dict[str, Any], credential: Optional[str] = None) -> Viewer:
    """Build the viewer identity from token claims (``sub``, ``roles`` or ``role``, ``permissions``)."""
    roles: List[str] = normalize_roles(payload.get("roles") or payload.get("role"))
    permissions: List[str] = normalize_roles(payload.get("permissions"))
    return Viewer(
        username=payload.get("sub"),
        roles=roles,
        permissions=permissions,
        is_authenticated=True,
        credential=credential,
    )


def session_credential(request: Request) -> Optional[str]:
    """The caller's session cookie, forwarded to the upstream menu API."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_current_viewer(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Viewer:
    """Get current viewer from JWT token"""
    payload = verify_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return viewer_from_claims(payload, session_credential(request))
