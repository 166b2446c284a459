"""User bootstrap API."""

from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from studyforge.api.dependencies import get_policy, json_body
from studyforge.core.auth import ensure_same_user, get_principal, get_principal_or_demo
from studyforge.features.degraded.policy import DegradedModePolicy
from studyforge.features.users.service import bootstrap_user, describe_current_user
from studyforge.models.principal import Principal

router = APIRouter(prefix="/api/users", tags=["users"])


class UserBootstrapRequest(BaseModel):
    id: str
    email: str
    name: Optional[str] = None

    @field_validator("id", "email")
    @classmethod
    def required_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("User ID and email are required")
        return value


@router.post("")
async def create_user(
    principal: Principal = Depends(get_principal),
    body: UserBootstrapRequest = Depends(json_body(UserBootstrapRequest)),
    policy: DegradedModePolicy = Depends(get_policy),
):
    ensure_same_user(principal, body.id)
    return await bootstrap_user(policy, body.id, body.email, body.name)


@router.get("")
async def current_user(
    principal: Principal = Depends(get_principal_or_demo),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await describe_current_user(policy, principal)
