"""Text summarization API. Summaries are saved for premium plans only."""

from typing import Literal
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from studyforge.api.dependencies import get_policy, json_body
from studyforge.core.auth import ensure_same_user, get_principal
from studyforge.features.content.kinds import SUMMARY_CONFIG
from studyforge.features.content.service import delete_content, get_content, list_content
from studyforge.features.degraded.policy import DegradedModePolicy
from studyforge.models.generation import ContentKind, GenerationRequest
from studyforge.models.principal import Principal

router = APIRouter(prefix="/api/summarize", tags=["summaries"])


class SummarizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(min_length=1)
    length: Literal["short", "medium", "long"] = "medium"
    style: Literal["concise", "detailed", "bullets", "academic"] = "concise"
    user_id: str = Field(alias="userId")


@router.post("")
async def summarize(
    principal: Principal = Depends(get_principal),
    body: SummarizeRequest = Depends(json_body(SummarizeRequest)),
    policy: DegradedModePolicy = Depends(get_policy),
):
    ensure_same_user(principal, body.user_id)
    request = GenerationRequest(
        kind=ContentKind.SUMMARY,
        parameters=body.model_dump(exclude={"user_id"}),
        raw_prompt=body.text,
    )
    return await policy.run(principal, SUMMARY_CONFIG, request)


@router.get("")
async def list_summaries(
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await list_content(policy, SUMMARY_CONFIG, principal, "summaries")


@router.get("/{summary_id}")
async def get_summary(
    summary_id: str,
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await get_content(policy, SUMMARY_CONFIG, principal, summary_id)


@router.delete("/{summary_id}")
async def delete_summary(
    summary_id: str,
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await delete_content(policy, SUMMARY_CONFIG, principal, summary_id)
