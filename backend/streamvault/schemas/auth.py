"""
Pydantic schemas for login/logout.
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    secret_key: str = Field("", alias="secretKey")

    model_config = {"populate_by_name": True}


class LoginResponse(BaseModel):
    success: bool
    message: str


class AuthStatusResponse(BaseModel):
    authenticated: bool
