from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    department_id: Optional[int] = None
    roles: List[str] = []


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    user: Optional[UserInfo] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenData(BaseModel):
    email: Optional[str] = None
    roles: List[str] = []


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)
