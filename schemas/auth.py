from pydantic import BaseModel
from typing import Optional

class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    name: str | None = None
