import logging
from decimal import Decimal
from typing import Callable, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.utils.text import normalize_text

logger = logging.getLogger(__name__)
settings = get_settings()

HIGH_VALUE_AMOUNT = Decimal("1000000")
FAILED_STATUSES = frozenset({"Customer Cancelled", "Order Rejected"})
INDUSTRIAL_ZONE_MARKER = "khu cong nghiep"
MEDIUM_RISK_CEILING = 70


class RiskInput(BaseModel):
    payment_method: str = "COD"
    amount: Decimal = Decimal("0")
    phone: str = ""
    address: Optional[str] = None
    past_statuses: List[str] = Field(default_factory=list)
    product_name: Optional[str] = None


class RiskResult(BaseModel):
    score: Optional[int] = None
    level: str = "none"
    reasons: List[str] = Field(default_factory=list)


RiskEvaluator = Callable[[RiskInput], RiskResult]


def risk_level_for(score: Optional[int], low_risk_threshold: Optional[int] = None) -> str:
    """Bucket a score; the low bucket ends at the configured low-risk threshold."""
    if score is None:
        return "none"
    threshold = settings.LOW_RISK_THRESHOLD if low_risk_threshold is None else low_risk_threshold
    if score <= threshold:
        return "low"
    if score <= MEDIUM_RISK_CEILING:
        return "medium"
    return "high"


def make_risk_evaluator(blacklist: Optional[FrozenSet[str]] = None) -> RiskEvaluator:
    """Build the default rule-based evaluator, optionally with a phone blacklist."""
    blocked = frozenset(blacklist or ())

    def evaluate(data: RiskInput) -> RiskResult:
        if data.payment_method != "COD":
            return RiskResult(score=None, level="none", reasons=[])

        score = 30
        reasons: List[str] = ["COD order"]

        if data.amount >= HIGH_VALUE_AMOUNT:
            score += 20
            reasons.append("High order value")

        failed = sum(1 for status in data.past_statuses if status in FAILED_STATUSES)
        if failed >= 3:
            score += 30
            reasons.append(f"{failed} failed past orders")
        elif failed >= 1:
            score += 10
            reasons.append(f"{failed} failed past order(s)")

        if INDUSTRIAL_ZONE_MARKER in normalize_text(data.address):
            score += 10
            reasons.append("Industrial zone address")

        if data.phone and data.phone in blocked:
            score = max(score, 80)
            reasons.append("Phone is blacklisted")

        score = max(0, min(100, score))
        return RiskResult(score=score, level=risk_level_for(score), reasons=reasons)

    return evaluate


evaluate_risk: RiskEvaluator = make_risk_evaluator()
