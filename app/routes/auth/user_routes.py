from fastapi import APIRouter, Depends

from app.models.auth.user import UserCreate, ProfileUpdate, RoleUpdate, UserRole
from app.routes.auth.dependencies import (
    get_current_email,
    get_current_user,
    get_role_service,
    require_role
)
from app.services.auth.role_service import RoleService
from app.utils.response import success_response

router = APIRouter(tags=["Users"])


@router.get("/user/{email}")
async def get_user(email: str, role_service: RoleService = Depends(get_role_service)):
    """Public user profile by email"""
    user = await role_service.get_user(email)
    return success_response(message="User retrieved successfully", data={"user": user})


@router.get("/role")
async def get_role(
    email: str = Depends(get_current_email),
    role_service: RoleService = Depends(get_role_service)
):
    """Role of the authenticated user"""
    role = await role_service.get_role(email)
    return success_response(message="Role retrieved successfully", data={"role": role})


@router.get("/all-users")
async def list_users(
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    role_service: RoleService = Depends(get_role_service)
):
    """All users, newest first (admin only)"""
    users = await role_service.list_users(current_user)
    return success_response(message="Users retrieved successfully", data={"users": users})


@router.post("/user")
async def register_user(
    user_data: UserCreate,
    email: str = Depends(get_current_email),
    role_service: RoleService = Depends(get_role_service)
):
    """
    Register the authenticated account.

    Idempotent: registering an existing email returns the stored user.
    The body email must match the verified credential.
    """
    user_data.email = email
    user, created = await role_service.register(user_data)

    if not created:
        return success_response(message="User already exists", data={"user": user})

    return success_response(
        message="User registered successfully",
        data={"user": user},
        status_code=201
    )


@router.patch("/user/role/{email}")
async def set_user_role(
    email: str,
    role_update: RoleUpdate,
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    role_service: RoleService = Depends(get_role_service)
):
    """Directly set a user's role (admin only)"""
    user = await role_service.set_role(email, role_update.role, current_user)
    return success_response(message="Role updated successfully", data={"user": user})


@router.patch("/user/profile")
async def update_profile(
    profile: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    role_service: RoleService = Depends(get_role_service)
):
    """Update name, bio and image of the authenticated user"""
    user = await role_service.update_profile(current_user["email"], profile)
    return success_response(message="Profile updated successfully", data={"user": user})
