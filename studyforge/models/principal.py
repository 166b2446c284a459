from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Principal(BaseModel):
    """Caller identity resolved from the bearer token, once per request."""
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    display_name: str = "User"
    is_demo: bool = False

    @staticmethod
    def display_name_for(email: Optional[str], name: Optional[str] = None) -> str:
        if name and name.strip():
            return name.strip()
        if email and "@" in email:
            return email.split("@")[0]
        return "User"


# Capability-limited identity used when the identity provider is down and the
# endpoint explicitly opts in.
DEMO_PRINCIPAL = Principal(
    id="demo-user",
    email="demo@example.com",
    display_name="Demo User",
    is_demo=True,
)


class Entitlement(BaseModel):
    """
    Subscription/quota record attached to a user.

    Absence is a valid state ("no entitlement known yet") and is treated
    exactly like a free plan.
    """
    model_config = ConfigDict(frozen=True)

    plan_type: str
    quota_limit: int
    quota_used: int = 0
    valid_until: Optional[datetime] = None

    @property
    def is_premium(self) -> bool:
        return self.plan_type != "FREE"
