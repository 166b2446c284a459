"""Practice paper API."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from studyforge.api.dependencies import get_policy, json_body
from studyforge.core.auth import ensure_same_user, get_principal
from studyforge.features.content.kinds import PRACTICE_CONFIG
from studyforge.features.content.service import delete_content, get_content, list_content
from studyforge.features.degraded.policy import DegradedModePolicy
from studyforge.models.generation import ContentKind, GenerationRequest
from studyforge.models.principal import Principal

router = APIRouter(prefix="/api/practice", tags=["practice"])

MAX_QUESTIONS = 15


class PracticeCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    subject: str
    topic: str
    difficulty: str
    questions: int = Field(ge=1, le=MAX_QUESTIONS)
    prompt: str = ""  # non-empty replaces the generated prompt
    user_id: str = Field(alias="userId")


@router.post("")
async def create_practice_paper(
    principal: Principal = Depends(get_principal),
    body: PracticeCreateRequest = Depends(json_body(PracticeCreateRequest)),
    policy: DegradedModePolicy = Depends(get_policy),
):
    ensure_same_user(principal, body.user_id)
    request = GenerationRequest(
        kind=ContentKind.PRACTICE,
        parameters=body.model_dump(exclude={"user_id"}),
        raw_prompt=body.prompt,
    )
    return await policy.run(principal, PRACTICE_CONFIG, request)


@router.get("/list")
async def list_practice_papers(
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await list_content(policy, PRACTICE_CONFIG, principal, "practices")


@router.get("/{practice_id}")
async def get_practice_paper(
    practice_id: str,
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await get_content(policy, PRACTICE_CONFIG, principal, practice_id)


@router.delete("/{practice_id}")
async def delete_practice_paper(
    practice_id: str,
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await delete_content(policy, PRACTICE_CONFIG, principal, practice_id)
