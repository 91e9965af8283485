from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


class PlanDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    total_meals: int
    total_dining_dollars: Decimal
    total_guest_swipes: int


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str = ""
    time: str = ""
    description: str = ""
    account: str = ""
    amount: str = ""


class AccountSnapshot(BaseModel):
    """
    Result of one successful account page parse.

    Balance fields are the raw strings shown on the page (e.g. "6", "$43.98"); `None` means the
    row was not on the page, which is a normal state (e.g. no Lion Bucks on the account).
    """

    model_config = ConfigDict(frozen=True)

    dining_dollars: Optional[str] = None
    lion_bucks: Optional[str] = None
    meal_swipes: Optional[str] = None
    guest_swipes: Optional[str] = None
    plan: Optional[PlanDefinition] = None

    # Document order; the portal decides what "recent" means.
    transactions: list[Transaction] = Field(default_factory=list)

    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def has_balances(self) -> bool:
        return any(
            v is not None for v in (self.dining_dollars, self.lion_bucks, self.meal_swipes, self.guest_swipes)
        )
