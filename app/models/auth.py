# app/models/auth.py

from pydantic import BaseModel, Field


class LoginIn(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"


class AdminOut(BaseModel):
    id: int
    username: str
