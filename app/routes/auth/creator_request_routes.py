from fastapi import APIRouter, Depends

from app.models.auth.user import UserRole
from app.routes.auth.dependencies import get_current_user, get_role_service, require_role
from app.services.auth.role_service import RoleService
from app.utils.response import success_response

router = APIRouter(tags=["Creator Requests"])


@router.get("/creator-requests")
async def list_creator_requests(
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    role_service: RoleService = Depends(get_role_service)
):
    """Outstanding creator promotion requests (admin only)"""
    requests = await role_service.list_requests(current_user)
    return success_response(message="Requests retrieved successfully", data={"requests": requests})


@router.post("/become-creator")
async def request_creator_promotion(
    current_user: dict = Depends(get_current_user),
    role_service: RoleService = Depends(get_role_service)
):
    """Ask an admin for the creator role. One outstanding request per user."""
    request = await role_service.request_creator_promotion(current_user["email"])
    return success_response(
        message="Creator request submitted",
        data={"request": request},
        status_code=201
    )


@router.patch("/creator-requests/approve/{email}")
async def approve_creator_request(
    email: str,
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    role_service: RoleService = Depends(get_role_service)
):
    """Promote the requester to creator and clear the request"""
    user = await role_service.approve_promotion(email, current_user)
    return success_response(message="User promoted to creator", data={"user": user})


@router.delete("/creator-requests/delete/{email}")
async def reject_creator_request(
    email: str,
    current_user: dict = Depends(require_role(UserRole.ADMIN)),
    role_service: RoleService = Depends(get_role_service)
):
    """Reject a creator request without changing the role"""
    await role_service.reject_promotion(email, current_user)
    return success_response(message="Creator request rejected")
