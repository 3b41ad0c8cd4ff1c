from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database import get_supabase_client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

CREATOR = "creator"
PARTICIPANT = "participant"
ROLES = (CREATOR, PARTICIPANT)

security = HTTPBearer(auto_error=False)

def verify_supabase_token(token: str):
    """Verify Supabase JWT token"""
    try:
        user = get_supabase_client().auth.get_user(token)
        if user and user.user:
            return user.user
        return None
    except Exception as e:
        logger.error(f"Supabase token verification failed: {e}")
        return None

def user_from_supabase(user) -> dict:
    """Reduce a Supabase user to the identity the quiz engine works with"""
    metadata = user.user_metadata or {}
    app_metadata = getattr(user, "app_metadata", None) or {}
    role = app_metadata.get("role") or metadata.get("role") or PARTICIPANT
    return {
        "id": user.id,
        "email": user.email,
        "name": metadata.get("name") or metadata.get("full_name") or user.email,
        "role": role if role in ROLES else PARTICIPANT,
    }

async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """Get current user from Supabase JWT token"""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized request"
        )

    user = verify_supabase_token(credentials.credentials)
    if user:
        return user_from_supabase(user)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials"
    )

async def get_current_user_optional(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """Get current user from JWT token (optional)"""
    if not credentials:
        return None

    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None

def is_creator(user: Optional[dict]) -> bool:
    return bool(user) and user.get("role") == CREATOR
