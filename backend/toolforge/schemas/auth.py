# backend/toolforge/schemas/auth.py
from typing import Optional

from pydantic import BaseModel, EmailStr


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Identity(BaseModel):
    id: str
    email: Optional[str] = None


class SessionState(BaseModel):
    identity: Optional[Identity] = None
    is_loading: bool


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    identity: Identity
