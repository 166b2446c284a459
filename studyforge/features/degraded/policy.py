"""
Degraded-mode request handling policy.

Every content-generation endpoint runs the same procedure:

1. probe the relational store under a short deadline (UP or DOWN)
2. best-effort entitlement lookup (UP only; failures read as "unknown")
3. generation under a longer deadline; failures become fallback content
4. conditional persistence; a failed write never discards the content
5. response composition: full success, partial success (207) or rejection

Generation and persistence are independent axes: every request that gets
past authentication receives non-empty content regardless of store state.
Per-kind differences are data (``KindConfig``), not control flow.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Type
import time

from fastapi.responses import JSONResponse

from studyforge.core.config import Settings
from studyforge.core.deadline import DeadlineResult, DeadlineStatus, run_with_deadline
from studyforge.core.logging import log_event
from studyforge.core.tracing import start_span
from studyforge.features.generation.provider import TextGenerationProvider
from studyforge.features.store.service import RelationalStore
from studyforge.models.generation import (
    ContentKind,
    GenerationParams,
    GenerationRequest,
    GenerationResult,
    GenerationSource,
)
from studyforge.models.principal import Entitlement, Principal
from studyforge.models.records import WireModel

PARTIAL_SUCCESS_STATUS = 207


class StoreStatus(str, Enum):
    UP = "up"
    DOWN = "down"


class PersistenceStatus(str, Enum):
    SAVED = "saved"
    SKIPPED_STORE_DOWN = "skipped_store_down"
    SKIPPED_NOT_ENTITLED = "skipped_not_entitled"
    FAILED_ON_WRITE = "failed_on_write"


@dataclass(frozen=True)
class PersistenceOutcome:
    status: PersistenceStatus
    record: Optional[WireModel] = None

    @property
    def saved(self) -> bool:
        return self.status is PersistenceStatus.SAVED


DEFAULT_PARTIAL_MESSAGES: Dict[PersistenceStatus, str] = {
    PersistenceStatus.SKIPPED_STORE_DOWN: "Content generated in demo mode; database not accessible",
    PersistenceStatus.SKIPPED_NOT_ENTITLED: "Content generated; saving requires a premium plan",
    PersistenceStatus.FAILED_ON_WRITE: "Content generated in demo mode; saving failed",
}


@dataclass(frozen=True)
class KindConfig:
    """Per-endpoint configuration for the generation procedure."""
    kind: ContentKind
    record_key: str
    record_model: Type[WireModel]
    build_prompt: Callable[[GenerationRequest], str]
    build_fallback: Callable[[GenerationRequest, Optional[BaseException]], str]
    # (request, result, owner_id) -> column values for the persisted record
    build_record_fields: Callable[[GenerationRequest, GenerationResult, str], Dict[str, Any]]
    temperature: float = 0.7
    max_tokens: int = 4000
    system_prompt: Optional[str] = None
    success_status: int = 200
    saved_message: str = "Content generated and saved"
    partial_messages: Mapping[PersistenceStatus, str] = field(default_factory=lambda: dict(DEFAULT_PARTIAL_MESSAGES))
    # None means persistence is not gated on entitlement
    requires_entitlement: Optional[Callable[[Optional[Entitlement]], bool]] = None
    extra_body: Optional[Callable[[GenerationResult, Optional[Entitlement], PersistenceOutcome], Dict[str, Any]]] = None


@dataclass(frozen=True)
class PolicyTimeouts:
    probe: float = 2.0
    store_operation: float = 5.0
    generation: float = 5.0

    @classmethod
    def from_settings(cls, cfg: Settings) -> "PolicyTimeouts":
        return cls(
            probe=cfg.STORE_PROBE_TIMEOUT_SECONDS,
            store_operation=cfg.STORE_OPERATION_TIMEOUT_SECONDS,
            generation=cfg.GENERATION_TIMEOUT_SECONDS,
        )


async def probe_store(store: Optional[RelationalStore], timeout: float) -> StoreStatus:
    """Classify the store for the rest of the request. Never raises."""
    if store is None:
        log_event("warning", "store.probe", event_type="store_unconfigured", extra={"status": "down"})
        return StoreStatus.DOWN
    with start_span("policy.probe_store"):
        result = await run_with_deadline(store.probe, timeout)
    if result.ok:
        return StoreStatus.UP
    log_event(
        "warning",
        "store.probe",
        event_type="store_down",
        extra={"status": "down", "reason": result.describe()},
    )
    return StoreStatus.DOWN


async def lookup_entitlement(
    store: Optional[RelationalStore],
    status: StoreStatus,
    principal_id: str,
    timeout: float,
) -> Optional[Entitlement]:
    """Best-effort entitlement fetch; "unknown" is returned as None."""
    if store is None or status is StoreStatus.DOWN:
        return None
    with start_span("policy.lookup_entitlement", {"user_id": principal_id}):
        result = await run_with_deadline(store.get_entitlement, timeout, principal_id)
    if not result.ok:
        log_event(
            "warning",
            "entitlement.lookup_failed",
            user_id=principal_id,
            extra={"reason": result.describe()},
        )
        return None
    return result.value


async def generate_content(
    provider: TextGenerationProvider,
    request: GenerationRequest,
    config: KindConfig,
    *,
    model: str,
    timeout: float,
) -> GenerationResult:
    """Call the provider under a deadline; substitute fallback content on any failure."""
    params = GenerationParams(
        model=model,
        prompt=config.build_prompt(request),
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        system_prompt=config.system_prompt,
    )
    with start_span("policy.generate", {"kind": request.kind.value, "model": model}):
        result = await run_with_deadline(provider.generate, timeout, params)

    if result.ok and isinstance(result.value, str) and result.value.strip():
        return GenerationResult(content=result.value, succeeded_via=GenerationSource.PROVIDER)

    error = _generation_error(result, timeout)
    log_event(
        "warning",
        "generation.fallback",
        kind=request.kind.value,
        error_code=type(error).__name__,
        extra={"reason": str(error)},
    )
    return GenerationResult(
        content=config.build_fallback(request, error),
        succeeded_via=GenerationSource.FALLBACK,
        error=str(error),
    )


def _generation_error(result: DeadlineResult, timeout: float) -> BaseException:
    if result.status is DeadlineStatus.TIMED_OUT:
        return TimeoutError(f"Generation timed out after {timeout:g}s")
    if result.error is not None:
        return result.error
    return ValueError("Provider returned empty content")


async def persist_result(
    store: Optional[RelationalStore],
    status: StoreStatus,
    config: KindConfig,
    request: GenerationRequest,
    result: GenerationResult,
    principal: Principal,
    entitlement: Optional[Entitlement],
    timeout: float,
) -> PersistenceOutcome:
    """
    Write the record when allowed. Exactly one outcome per request.

    A write that misses its deadline is abandoned, not cancelled: the insert
    may still commit afterwards. The caller then holds a 207
    ``failed_on_write`` response with a ``demo-`` id while a saved row exists
    under the store-assigned id, and it shows up in later listings.
    """
    if store is None or status is StoreStatus.DOWN:
        return PersistenceOutcome(PersistenceStatus.SKIPPED_STORE_DOWN)
    if config.requires_entitlement is not None and not config.requires_entitlement(entitlement):
        return PersistenceOutcome(PersistenceStatus.SKIPPED_NOT_ENTITLED)

    fields = config.build_record_fields(request, result, principal.id)
    with start_span("policy.persist", {"kind": config.kind.value, "user_id": principal.id}):
        write = await run_with_deadline(store.create_record, timeout, config.kind, fields)
    if not write.ok:
        log_event(
            "error",
            "persistence.write_failed",
            user_id=principal.id,
            kind=config.kind.value,
            extra={"reason": write.describe()},
        )
        return PersistenceOutcome(PersistenceStatus.FAILED_ON_WRITE)
    return PersistenceOutcome(PersistenceStatus.SAVED, record=write.value)


def response_status(outcome: PersistenceOutcome, success_status: int = 200) -> int:
    """Full success keeps the kind's status; every skipped or failed save is 207."""
    return success_status if outcome.saved else PARTIAL_SUCCESS_STATUS


def demo_record_id() -> str:
    return f"demo-{int(time.time() * 1000)}"


def build_demo_record(config: KindConfig, request: GenerationRequest, result: GenerationResult, owner_id: str) -> WireModel:
    now = datetime.now(timezone.utc)
    fields = config.build_record_fields(request, result, owner_id)
    fields.update(id=demo_record_id(), created_at=now, updated_at=now)
    return config.record_model.model_validate(fields)


def compose_response(
    config: KindConfig,
    outcome: PersistenceOutcome,
    result: GenerationResult,
    *,
    entitlement: Optional[Entitlement] = None,
    demo_record: Optional[WireModel] = None,
) -> JSONResponse:
    if outcome.saved:
        body: Dict[str, Any] = {
            "message": config.saved_message,
            config.record_key: outcome.record.to_wire(),
            "saved": True,
            "generatedBy": result.succeeded_via.value,
        }
    else:
        body = {
            "message": config.partial_messages.get(outcome.status, DEFAULT_PARTIAL_MESSAGES[outcome.status]),
            "content": result.content,
            config.record_key: demo_record.to_wire() if demo_record is not None else None,
            "demo": True,
            "saved": False,
            "reason": outcome.status.value,
            "generatedBy": result.succeeded_via.value,
        }
    if config.extra_body is not None:
        body.update(config.extra_body(result, entitlement, outcome))
    return JSONResponse(status_code=response_status(outcome, config.success_status), content=body)


class DegradedModePolicy:
    """The parameterised generation procedure with injected collaborators."""

    def __init__(
        self,
        store: Optional[RelationalStore],
        provider: TextGenerationProvider,
        *,
        model: str,
        timeouts: Optional[PolicyTimeouts] = None,
    ):
        self.store = store
        self.provider = provider
        self.model = model
        self.timeouts = timeouts or PolicyTimeouts()

    @classmethod
    def from_settings(cls, cfg: Settings, store: Optional[RelationalStore], provider: TextGenerationProvider) -> "DegradedModePolicy":
        return cls(store, provider, model=cfg.GENERATION_MODEL, timeouts=PolicyTimeouts.from_settings(cfg))

    async def probe(self) -> StoreStatus:
        return await probe_store(self.store, self.timeouts.probe)

    async def store_call(self, fn_name: str, *args) -> Optional[DeadlineResult]:
        """
        Probe, then run one store read/write under the operation deadline.

        Returns None when the store is DOWN; otherwise the tagged result.
        """
        status = await self.probe()
        if status is StoreStatus.DOWN:
            return None
        return await run_with_deadline(getattr(self.store, fn_name), self.timeouts.store_operation, *args)

    async def run(self, principal: Principal, config: KindConfig, request: GenerationRequest) -> JSONResponse:
        with start_span("policy.run", {"kind": config.kind.value, "user_id": principal.id}):
            status = await self.probe()
            entitlement = await lookup_entitlement(self.store, status, principal.id, self.timeouts.store_operation)
            result = await generate_content(
                self.provider,
                request,
                config,
                model=self.model,
                timeout=self.timeouts.generation,
            )
            outcome = await persist_result(
                self.store,
                status,
                config,
                request,
                result,
                principal,
                entitlement,
                self.timeouts.store_operation,
            )

        log_event(
            "info",
            "generation.complete",
            user_id=principal.id,
            kind=config.kind.value,
            extra={
                "store": status.value,
                "persistence": outcome.status.value,
                "generated_by": result.succeeded_via.value,
            },
        )
        demo_record = None
        if not outcome.saved:
            demo_record = build_demo_record(config, request, result, principal.id)
        return compose_response(config, outcome, result, entitlement=entitlement, demo_record=demo_record)
