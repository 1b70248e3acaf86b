from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    password: str = Field(min_length=8)
    first_name: str
    last_name: str

# Output schema for user profile details
class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    subscribed: bool = False

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
