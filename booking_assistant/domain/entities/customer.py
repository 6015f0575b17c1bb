from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OnboardingState(str, Enum):
    NEW = "new"
    AWAITING_NAME = "awaiting_name"
    AWAITING_EMAIL = "awaiting_email"
    ACTIVE = "active"


@dataclass(frozen=True)
class Customer:
    address: str  # channel address (phone number), primary key
    onboarding_state: OnboardingState = OnboardingState.NEW
    display_name: str | None = None
    contact_email: str | None = None
    created_at: float | None = None
    updated_at: float | None = None
