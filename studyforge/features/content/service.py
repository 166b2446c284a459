"""
Read and delete paths for generated content.

Store outages are absorbed here as well: listings fall back to a demo
listing with 207, single-record reads and deletes answer 207 with no record.
Ownership and existence are still enforced when the store is reachable.
"""

from datetime import datetime, timedelta, timezone
from typing import List

from fastapi.responses import JSONResponse

from studyforge.core.errors import NotFoundError, PermissionError
from studyforge.core.logging import log_event
from studyforge.features.degraded.policy import PARTIAL_SUCCESS_STATUS, DegradedModePolicy, KindConfig
from studyforge.features.store.service import DeleteOutcome
from studyforge.models.generation import ContentKind
from studyforge.models.principal import Principal
from studyforge.models.records import PracticePaperRecord, WireModel

LABELS = {
    ContentKind.NOTE: ("Note", "notes"),
    ContentKind.PRACTICE: ("Practice paper", "practice papers"),
    ContentKind.SUMMARY: ("Summary", "summaries"),
}


def demo_listing(kind: ContentKind, owner_id: str) -> List[WireModel]:
    """Sample records shown while the store is unreachable."""
    if kind is not ContentKind.PRACTICE:
        return []
    now = datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    three_days_ago = now - timedelta(days=3)
    return [
        PracticePaperRecord(
            id="demo-2",
            user_id=owner_id,
            title="Science - Physics (HARD)",
            subject="science",
            topic="Physics",
            difficulty="hard",
            content="<h1>Physics Practice Test</h1><p>This is a demonstration practice paper for physics.</p>",
            created_at=three_days_ago,
            updated_at=three_days_ago,
        ),
        PracticePaperRecord(
            id="demo-1",
            user_id=owner_id,
            title="Mathematics - Algebra (MEDIUM)",
            subject="math",
            topic="Algebra",
            difficulty="medium",
            content="<h1>Algebra Practice Test</h1><p>This is a demonstration practice paper for algebra.</p>",
            created_at=week_ago,
            updated_at=week_ago,
        ),
    ]


async def list_content(policy: DegradedModePolicy, config: KindConfig, principal: Principal, list_key: str) -> JSONResponse:
    _, plural = LABELS[config.kind]
    result = await policy.store_call("list_records", config.kind, principal.id)
    if result is None or not result.ok:
        log_event(
            "warning",
            "content.list_degraded",
            user_id=principal.id,
            kind=config.kind.value,
            extra={"reason": "store down" if result is None else result.describe()},
        )
        records = demo_listing(config.kind, principal.id)
        return JSONResponse(
            status_code=PARTIAL_SUCCESS_STATUS,
            content={
                list_key: [record.to_wire() for record in records],
                "message": f"Demo {plural} retrieved. Database connection issues detected.",
                "demo": True,
            },
        )
    return JSONResponse(
        status_code=200,
        content={
            list_key: [record.to_wire() for record in result.value],
            "message": f"{plural.capitalize()} retrieved successfully",
        },
    )


async def get_content(policy: DegradedModePolicy, config: KindConfig, principal: Principal, record_id: str) -> JSONResponse:
    label, _ = LABELS[config.kind]
    result = await policy.store_call("find_record", config.kind, record_id, principal.id)
    if result is None or not result.ok:
        return JSONResponse(
            status_code=PARTIAL_SUCCESS_STATUS,
            content={
                config.record_key: None,
                "message": f"Unable to fetch {label.lower()} while the database is not accessible",
                "demo": True,
            },
        )
    if result.value is None:
        raise NotFoundError(f"{label} not found")
    return JSONResponse(status_code=200, content={config.record_key: result.value.to_wire()})


async def delete_content(policy: DegradedModePolicy, config: KindConfig, principal: Principal, record_id: str) -> JSONResponse:
    label, _ = LABELS[config.kind]
    result = await policy.store_call("delete_record", config.kind, record_id, principal.id)
    if result is None or not result.ok:
        return JSONResponse(
            status_code=PARTIAL_SUCCESS_STATUS,
            content={
                "message": f"{label} could not be deleted while the database is not accessible",
                "deleted": False,
                "demo": True,
            },
        )
    if result.value is DeleteOutcome.NOT_FOUND:
        raise NotFoundError(f"{label} not found")
    if result.value is DeleteOutcome.FORBIDDEN:
        log_event("warning", "content.delete_forbidden", user_id=principal.id, kind=config.kind.value)
        raise PermissionError(f"Not authorized to delete this {label.lower()}")
    return JSONResponse(status_code=200, content={"message": f"{label} deleted successfully", "deleted": True})
