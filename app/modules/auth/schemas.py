from pydantic import BaseModel, Field


class UnlockRequest(BaseModel):
    password: str = Field(..., min_length=1, description="Clave del operador")


class CapabilityToken(BaseModel):
    capability_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token expiration time in seconds")
