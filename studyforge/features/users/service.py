"""
User bootstrap and profile lookup.

Follows the same split as content generation: 200/201 when the store
answered, 207 with a demo user when it did not.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi.responses import JSONResponse

from studyforge.core.deadline import run_with_deadline
from studyforge.core.logging import log_event
from studyforge.features.degraded.policy import PARTIAL_SUCCESS_STATUS, DegradedModePolicy, StoreStatus
from studyforge.models.principal import Principal
from studyforge.models.records import SubscriptionView, UserRecord

DEMO_PLAN = "DEMO"
DEMO_QUOTA_LIMIT = 5
DEMO_PLAN_HOURS = 24


def display_name(email: str, name: Optional[str]) -> str:
    return Principal.display_name_for(email, name)


def demo_user(user_id: str, email: str, name: str, *, with_subscription: bool = True) -> UserRecord:
    now = datetime.now(timezone.utc)
    subscription = None
    if with_subscription:
        subscription = SubscriptionView(
            plan=DEMO_PLAN,
            quota_limit=DEMO_QUOTA_LIMIT,
            quota_used=0,
            valid_until=now + timedelta(hours=DEMO_PLAN_HOURS),
        )
    return UserRecord(id=user_id, email=email, name=name, created_at=now, updated_at=now, subscription=subscription)


def _partial(message: str, user: UserRecord, **extra) -> JSONResponse:
    body = {"message": message, "demo": True, "user": user.to_wire()}
    body.update(extra)
    return JSONResponse(status_code=PARTIAL_SUCCESS_STATUS, content=body)


async def bootstrap_user(policy: DegradedModePolicy, user_id: str, email: str, name: Optional[str]) -> JSONResponse:
    """Create the user row (and a FREE subscription) on first sign-in."""
    resolved_name = display_name(email, name)
    pending = demo_user(user_id, email, resolved_name, with_subscription=False)

    if await policy.probe() is StoreStatus.DOWN:
        return _partial("Database not accessible, user will be created when connection is restored", pending)

    timeout = policy.timeouts.store_operation
    existing = await run_with_deadline(policy.store.get_user, timeout, user_id)
    if not existing.ok:
        log_event("error", "users.lookup_failed", user_id=user_id, extra={"reason": existing.describe()})
        return _partial("Database error, user will be created when connection is restored", pending)
    if existing.value is not None:
        return JSONResponse(
            status_code=200,
            content={"message": "User already exists", "user": existing.value.to_wire()},
        )

    created = await run_with_deadline(policy.store.create_user, timeout, user_id, email, resolved_name)
    if not created.ok:
        log_event("error", "users.create_failed", user_id=user_id, extra={"reason": created.describe()})
        return _partial("Database error, user will be created when connection is restored", pending)

    log_event("info", "users.created", user_id=user_id)
    return JSONResponse(
        status_code=201,
        content={"message": "User created successfully", "user": created.value.to_wire()},
    )


async def describe_current_user(policy: DegradedModePolicy, principal: Principal) -> JSONResponse:
    """Return the caller's profile and subscription, or a demo profile."""
    email = principal.email or "user@example.com"
    fallback = demo_user(principal.id, email, principal.display_name)

    if principal.is_demo:
        return _partial(
            "Unable to verify your identity, but you can continue in demo mode",
            fallback,
            identityAvailable=False,
        )

    if await policy.probe() is StoreStatus.DOWN:
        return _partial("Database not accessible, but you can continue in demo mode", fallback)

    found = await run_with_deadline(policy.store.get_user, policy.timeouts.store_operation, principal.id)
    if not found.ok:
        log_event("error", "users.lookup_failed", user_id=principal.id, extra={"reason": found.describe()})
        return _partial("Database error, but you can continue in demo mode", fallback)
    if found.value is None:
        return _partial("User not found in database, but can continue in demo mode", fallback, userExists=False)

    return JSONResponse(status_code=200, content={"user": found.value.to_wire()})
