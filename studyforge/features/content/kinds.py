"""Per-kind configuration for notes, practice papers and summaries."""

from typing import Any, Dict, Optional

from studyforge.features.degraded.policy import KindConfig, PersistenceOutcome, PersistenceStatus
from studyforge.features.generation.fallback import (
    build_note_fallback,
    build_practice_fallback,
    build_summary_fallback,
)
from studyforge.features.generation.prompts import (
    NOTE_SYSTEM_PROMPT,
    PRACTICE_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_note_prompt,
    build_practice_prompt,
    build_summary_prompt,
)
from studyforge.models.generation import ContentKind, GenerationRequest, GenerationResult
from studyforge.models.principal import Entitlement
from studyforge.models.records import NoteRecord, PracticePaperRecord, SummaryRecord


def _note_fields(request: GenerationRequest, result: GenerationResult, owner_id: str) -> Dict[str, Any]:
    return {
        "user_id": owner_id,
        "title": request.param("title"),
        "subject": request.parameters.get("subject"),
        "topic": request.parameters.get("topic"),
        "content": result.content,
        "prompt": request.raw_prompt,
    }


def _practice_fields(request: GenerationRequest, result: GenerationResult, owner_id: str) -> Dict[str, Any]:
    return {
        "user_id": owner_id,
        "title": request.param("title"),
        "subject": request.param("subject"),
        "topic": request.param("topic"),
        "difficulty": request.param("difficulty"),
        "content": result.content,
        "prompt": request.raw_prompt,
    }


def _summary_fields(request: GenerationRequest, result: GenerationResult, owner_id: str) -> Dict[str, Any]:
    return {
        "user_id": owner_id,
        "original_text_length": len(request.param("text")),
        "summary_length": len(result.content),
        "style": request.param("style", "concise"),
        "length": request.param("length", "medium"),
        "content": result.content,
    }


def summaries_entitled(entitlement: Optional[Entitlement]) -> bool:
    """Auto-saving summaries is a premium feature; unknown counts as free."""
    return entitlement is not None and entitlement.is_premium


def _summary_extra(result: GenerationResult, entitlement: Optional[Entitlement], outcome: PersistenceOutcome) -> Dict[str, Any]:
    extra: Dict[str, Any] = {
        "summary": result.content,
        "isPremium": summaries_entitled(entitlement),
    }
    if outcome.saved:
        extra["id"] = outcome.record.id
    return extra


NOTE_CONFIG = KindConfig(
    kind=ContentKind.NOTE,
    record_key="note",
    record_model=NoteRecord,
    build_prompt=build_note_prompt,
    build_fallback=build_note_fallback,
    build_record_fields=_note_fields,
    temperature=0.7,
    max_tokens=4000,
    system_prompt=NOTE_SYSTEM_PROMPT,
    success_status=201,
    saved_message="Note created successfully",
    partial_messages={
        PersistenceStatus.SKIPPED_STORE_DOWN: "Note content generated in demo mode",
        PersistenceStatus.SKIPPED_NOT_ENTITLED: "Note content generated but not saved for this plan",
        PersistenceStatus.FAILED_ON_WRITE: "Note content generated in demo mode; saving failed",
    },
)

PRACTICE_CONFIG = KindConfig(
    kind=ContentKind.PRACTICE,
    record_key="practice",
    record_model=PracticePaperRecord,
    build_prompt=build_practice_prompt,
    build_fallback=build_practice_fallback,
    build_record_fields=_practice_fields,
    temperature=0.7,
    max_tokens=2000,
    system_prompt=PRACTICE_SYSTEM_PROMPT,
    success_status=200,
    saved_message="Practice paper generated and saved",
    partial_messages={
        PersistenceStatus.SKIPPED_STORE_DOWN: "Practice paper generated but not saved to database",
        PersistenceStatus.SKIPPED_NOT_ENTITLED: "Practice paper generated but not saved for this plan",
        PersistenceStatus.FAILED_ON_WRITE: "Practice paper generated but saving failed",
    },
)

SUMMARY_CONFIG = KindConfig(
    kind=ContentKind.SUMMARY,
    record_key="record",
    record_model=SummaryRecord,
    build_prompt=build_summary_prompt,
    build_fallback=build_summary_fallback,
    build_record_fields=_summary_fields,
    temperature=0.5,
    max_tokens=4000,
    system_prompt=SUMMARY_SYSTEM_PROMPT,
    success_status=200,
    saved_message="Summary generated and saved",
    partial_messages={
        PersistenceStatus.SKIPPED_STORE_DOWN: "Summary generated in demo mode; database not accessible",
        PersistenceStatus.SKIPPED_NOT_ENTITLED: "Summary generated; upgrade to premium to save summaries",
        PersistenceStatus.FAILED_ON_WRITE: "Summary generated but saving failed",
    },
    requires_entitlement=summaries_entitled,
    extra_body=_summary_extra,
)
