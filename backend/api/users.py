from fastapi import APIRouter, Depends, Query, Response
from typing import List, Optional

from constants import HTTPStatus
from dependencies import get_user_service
from models import User as UserModel
from schemas import User, UserCreate, UserUpdate, DepartmentSummary, RoleSchema
from services.user_service import UserService
from utils.error_handlers import handle_api_errors

router = APIRouter()


def _to_schema(user: UserModel) -> User:
    """Build the response model; attributes are flattened to key -> value."""
    return User(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        age=user.age,
        active=bool(user.active),
        balance=user.balance or 0.0,
        created_at=user.created_at,
        department_id=user.department_id,
        manager_id=user.manager_id,
        department=DepartmentSummary.model_validate(user.department) if user.department else None,
        roles=[RoleSchema.model_validate(role) for role in user.roles],
        attributes={key: attribute.value for key, attribute in user.attributes.items()}
    )


@router.get("/users", response_model=List[User])
@handle_api_errors("User listing")
def list_users(
    service: UserService = Depends(get_user_service),
    department: Optional[str] = Query(None, description="Exact department name"),
    active: Optional[bool] = Query(None),
    role: Optional[str] = Query(None, description="Only users holding this role"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0)
):
    """Users ordered by id, optionally filtered."""
    users = service.list_users(department=department, active=active, role=role, limit=limit, offset=offset)
    return [_to_schema(user) for user in users]


@router.get("/users/{user_id}", response_model=User)
@handle_api_errors("User lookup")
def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    return _to_schema(service.get_user(user_id))


@router.post("/users", response_model=User, status_code=HTTPStatus.CREATED)
@handle_api_errors("User creation")
def create_user(payload: UserCreate, service: UserService = Depends(get_user_service)):
    return _to_schema(service.create_user(payload))


@router.put("/users/{user_id}", response_model=User)
@handle_api_errors("User update")
def update_user(user_id: str, payload: UserUpdate, service: UserService = Depends(get_user_service)):
    return _to_schema(service.update_user(user_id, payload))


@router.delete("/users/{user_id}", status_code=HTTPStatus.NO_CONTENT)
@handle_api_errors("User deletion")
def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    service.delete_user(user_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)
