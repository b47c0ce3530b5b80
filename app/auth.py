import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security_utils import create_jwt_token, mask_email, verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a bearer token for ``email``. Production tokens come from the identity provider."""
    return create_jwt_token({"sub": email.lower()}, expires_delta)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from a bearer JWT whose ``sub`` claim is the user's email"""

    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    payload = verify_jwt_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Token verification failed")

    email = (payload.get("sub") or "").lower()
    if not email:
        logger.error(f"❌ Token missing subject claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.warning(f"⚠️ Token subject {mask_email(email)} is not a registered user")
        raise HTTPException(status_code=401, detail="User not found")

    logger.debug(f"✅ Authenticated {mask_email(email)}")
    return user
