import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .domain.scope import Scope
from .errors import AuthorizationError, Unauthorized
from .models import Business
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Caller identity handed to the booking core"""

    user_id: str
    is_business_owner: bool = False
    scope: Optional[Scope] = None  # Calendar the owner manages

    @property
    def business_id(self) -> Optional[int]:
        return self.scope.business_id if self.scope else None


def build_auth_context(db: Session, user_id: str) -> AuthContext:
    """Resolve the business a user owns, if any"""
    business = db.query(Business).filter(Business.owner_user_id == user_id).first()
    if not business:
        return AuthContext(user_id=user_id)
    return AuthContext(user_id=user_id, is_business_owner=True, scope=Scope(business_id=business.id))


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Get the caller's auth context from a Bearer JWT"""
    if not credentials:
        logger.error("❌ No credentials provided")
        raise Unauthorized("Not authenticated. Please provide a valid Bearer token in the Authorization header.")

    payload = verify_jwt_token(credentials.credentials)
    if not payload:
        raise Unauthorized("Invalid or expired token")

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise Unauthorized("Invalid token claims")

    return build_auth_context(db, str(user_id))


async def get_business_owner(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Require the caller to own a business. Use for all dashboard routes."""
    if not auth.is_business_owner:
        logger.warning(f"⚠️ User {auth.user_id} attempted to access business routes without a business")
        raise AuthorizationError("Business account required")
    return auth
