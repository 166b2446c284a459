"""Study notes API: generate, list, fetch and delete notes."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, field_validator

from studyforge.api.dependencies import get_policy, json_body
from studyforge.core.auth import ensure_same_user, get_principal
from studyforge.features.content.kinds import NOTE_CONFIG
from studyforge.features.content.service import delete_content, get_content, list_content
from studyforge.features.degraded.policy import DegradedModePolicy
from studyforge.models.generation import ContentKind, GenerationRequest
from studyforge.models.principal import Principal

router = APIRouter(prefix="/api/notes", tags=["notes"])


class NoteCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    prompt: str
    subject: Optional[str] = None
    topic: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")

    @field_validator("title", "prompt")
    @classmethod
    def required_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Title and prompt are required")
        return value


@router.post("")
async def create_note(
    principal: Principal = Depends(get_principal),
    body: NoteCreateRequest = Depends(json_body(NoteCreateRequest)),
    policy: DegradedModePolicy = Depends(get_policy),
):
    ensure_same_user(principal, body.user_id)
    request = GenerationRequest(
        kind=ContentKind.NOTE,
        parameters=body.model_dump(exclude={"user_id"}),
        raw_prompt=body.prompt,
    )
    return await policy.run(principal, NOTE_CONFIG, request)


@router.get("")
async def list_notes(
    note_id: Optional[str] = Query(None, alias="id"),
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    if note_id:
        return await get_content(policy, NOTE_CONFIG, principal, note_id)
    return await list_content(policy, NOTE_CONFIG, principal, "notes")


@router.get("/{note_id}")
async def get_note(
    note_id: str,
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await get_content(policy, NOTE_CONFIG, principal, note_id)


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    principal: Principal = Depends(get_principal),
    policy: DegradedModePolicy = Depends(get_policy),
):
    return await delete_content(policy, NOTE_CONFIG, principal, note_id)
