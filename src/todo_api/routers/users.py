from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import get_user_service
from ..schemas import ErrorResponse, UsersResponse
from ..services import UserService

router = APIRouter(
    prefix="/api/users",
    tags=["users"],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=UsersResponse,
    summary="List Users",
    description="List all users, ordered by username.",
    responses={500: {"model": ErrorResponse, "description": "Unexpected error"}},
)
def list_users(service: UserService = Depends(get_user_service)) -> UsersResponse:
    users = service.list_users()
    message = "Users retrieved successfully" if users else "No users found"
    return UsersResponse(message=message, users=users)
