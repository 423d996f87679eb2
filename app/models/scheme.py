from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class SchemeStatus:
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class SchemeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    subscription_amount: float = Field(..., gt=0)
    start_date: str
    end_date: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    scheme_type: Optional[str] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    number_of_winners: Optional[int] = Field(default=None, ge=0)
    draw_date: Optional[str] = None
    subscription_cycle: Optional[str] = None
    auto_renewal: Optional[bool] = None
    status: Optional[str] = SchemeStatus.DRAFT
    winner_selection_criteria: Optional[Dict[str, Any]] = None
    terms_and_conditions: Optional[str] = None


class SchemeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    subscription_amount: Optional[float] = Field(default=None, gt=0)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    scheme_type: Optional[str] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    number_of_winners: Optional[int] = Field(default=None, ge=0)
    draw_date: Optional[str] = None
    subscription_cycle: Optional[str] = None
    auto_renewal: Optional[bool] = None
    status: Optional[str] = None
    winner_selection_criteria: Optional[Dict[str, Any]] = None
    terms_and_conditions: Optional[str] = None


class DrawWinner(BaseModel):
    user_id: str = Field(..., min_length=1)
    allow_future_participation: bool = False


class DrawWinnersAdd(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    winners: List[DrawWinner]


class PrizeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    rank: int = Field(..., ge=1)
    prize_type: str = "cash"
    cash_amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    product_details: Optional[Dict[str, Any]] = None


class PrizeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    rank: Optional[int] = Field(default=None, ge=1)
    prize_type: Optional[str] = None
    cash_amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    product_details: Optional[Dict[str, Any]] = None


class WinnerStatus:
    PENDING = "pending"
    CLAIMED = "claimed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class WinnersCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scheme_id: str = Field(..., alias="schemeId", min_length=1)
    card_ids: List[str] = Field(..., alias="cardIds", min_length=1)


class WinnerUpdate(BaseModel):
    status: Optional[str] = Field(default=None, pattern="^(pending|claimed|delivered|cancelled)$")
    claimed_at: Optional[str] = None
    delivered_at: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
