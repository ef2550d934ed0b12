from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from datetime import datetime


class DepartmentSummary(BaseModel):
    id: str
    name: str
    code: Optional[str] = None

    class Config:
        from_attributes = True


class RoleSchema(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = Field(None, max_length=120)
    full_name: Optional[str] = Field(None, max_length=120)
    age: Optional[int] = Field(None, ge=0)
    active: bool = True
    balance: float = 0.0


class UserCreate(UserBase):
    department_id: Optional[str] = None
    manager_id: Optional[str] = None
    role_ids: List[int] = []
    attributes: Dict[str, str] = {}


class UserUpdate(BaseModel):
    """Partial update; only fields that are sent are changed"""
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = Field(None, max_length=120)
    full_name: Optional[str] = Field(None, max_length=120)
    age: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None
    balance: Optional[float] = None
    department_id: Optional[str] = None
    manager_id: Optional[str] = None
    role_ids: Optional[List[int]] = None


class User(UserBase):
    id: str
    created_at: Optional[datetime] = None
    department_id: Optional[str] = None
    manager_id: Optional[str] = None
    department: Optional[DepartmentSummary] = None
    roles: List[RoleSchema] = []
    attributes: Dict[str, str] = {}

    class Config:
        from_attributes = True
