"""User and authentication schemas"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = ""
    last_name: str = ""
    phone: str = ""

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or "." not in value.split("@")[-1]:
            raise ValueError("Invalid email address")
        return value


class UserLogin(BaseModel):
    email: str
    password: str


class GoogleLogin(BaseModel):
    """Either a Sign-In ``credential`` (ID token) or an authorization ``code``"""
    credential: Optional[str] = None
    code: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class VerifyResetCodeRequest(BaseModel):
    email: str
    code: str = Field(..., min_length=6, max_length=6)


class ResetPasswordRequest(VerifyResetCodeRequest):
    new_password: str = Field(..., min_length=6, max_length=128)


class UserResponse(BaseModel):
    user_id: str
    username: str
    email: str
    role: str
    is_active: bool
    first_name: str
    last_name: str
    phone: str
    badge: str
    import_source: str
    created_at: datetime

    class Config:
        from_attributes = True


class UserDetailResponse(UserResponse):
    """Full profile as seen by admins"""
    phone2: str
    birthday: Optional[datetime] = None
    discord_id: str
    tradingview_id: str
    trading_segment: str
    address: Optional[dict] = None
    address2: Optional[dict] = None
    address3: Optional[dict] = None
    labels: List[str] = Field(default_factory=list)
    email_subscriber_status: str
    sms_subscriber_status: str
    source: str
    language: str
    last_activity: str
    last_activity_date: Optional[datetime] = None
    created_at_utc: Optional[datetime] = None
    import_date: Optional[datetime] = None


class AuthResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class UserListResponse(BaseModel):
    success: bool = True
    users: List[UserResponse]
    total: int
    total_pages: int
    current_page: int


class ImportSummary(BaseModel):
    total: int
    successful: int
    failed: int
    enrollments: int
    errors: List[str]
    enrollment_errors: List[str]


class ImportResponse(BaseModel):
    success: bool = True
    message: str = "CSV import completed"
    results: ImportSummary
