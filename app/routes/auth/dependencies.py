from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.database import get_database
from app.models.auth.user import UserRole
from app.services.auth.identity import BaseIdentityVerifier
from app.services.auth.role_service import RoleService
from app.services.payment.gateways.base import BasePaymentGateway
from app.utils.errors import Forbidden, Unauthenticated, UpstreamFailure

# Bearer scheme
bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_verifier(request: Request) -> BaseIdentityVerifier:
    """Identity verifier constructed in the app lifespan"""
    return getattr(request.app.state, "identity_verifier", None)


def get_payment_gateway(request: Request) -> BasePaymentGateway:
    """Payment gateway constructed in the app lifespan"""
    return getattr(request.app.state, "payment_gateway", None)


async def get_current_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: BaseIdentityVerifier = Depends(get_identity_verifier)
) -> str:
    """Verified email of the caller"""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    if verifier is None:
        raise UpstreamFailure("Identity provider is not configured")
    return await verifier.verify(credentials.credentials)


async def get_current_user(
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
) -> dict:
    """Get current authenticated user"""
    user = await db.users.find_one({"email": email})
    if user is None:
        raise Unauthenticated("No profile for this account, please register first")
    return user


def require_role(*roles: UserRole):
    """Dependency factory: current user must hold one of `roles`"""
    allowed = {UserRole(role).value for role in roles}

    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in allowed:
            raise Forbidden(f"Requires role: {', '.join(sorted(allowed))}")
        return user

    return checker


def get_role_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> RoleService:
    return RoleService(db)
