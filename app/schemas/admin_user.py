"""AdminUser schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

VALID_ROLES = {"super-admin", "admin"}


class AdminLogin(BaseModel):
    email: str
    password: str


class AdminUserCreate(BaseModel):
    name: str = Field(..., description="Display name for this admin user")
    email: str
    password: str = Field(..., min_length=8)
    role: str = Field("admin", description="Role: super-admin | admin")

    @model_validator(mode="after")
    def check_role(self):
        if self.role not in VALID_ROLES:
            raise ValueError("role must be one of: super-admin, admin")
        return self


class AdminUserResponse(BaseModel):
    admin_id: str
    name: str
    email: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminAuthResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminUserResponse


class AdminPasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class AdminProfileUpdate(BaseModel):
    name: str = Field(..., min_length=3)
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")
