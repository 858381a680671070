"""User listing endpoint for administrators."""

from typing import Annotated

from fastapi import APIRouter, Depends

from tourhub.api.v1.params import ListQuery, list_query
from tourhub.core.constants import ROLE_ADMIN
from tourhub.core.security import ensure_roles
from tourhub.dependencies import IdentityDep, UserServiceDep
from tourhub.schemas.common import ApiResponse, PageData
from tourhub.services.filter_sort import USERS

router = APIRouter(prefix="/users", tags=["users"])

UsersQuery = Annotated[ListQuery, Depends(list_query(USERS))]


@router.get(
    "",
    response_model=ApiResponse[PageData],
    summary="List Users",
    description="Paginated users, filterable by role and seller status (admin only)",
)
async def list_users(
    params: UsersQuery,
    user_service: UserServiceDep,
    identity: IdentityDep,
) -> ApiResponse[PageData]:
    ensure_roles(identity, ROLE_ADMIN)
    result = await user_service.list_users(params.page, params.query)
    return ApiResponse(message="Users retrieved", data=PageData.from_result(result))
