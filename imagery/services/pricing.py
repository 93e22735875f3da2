from dataclasses import dataclass, field

from imagery.models.profile import PlanTier


@dataclass(frozen=True)
class PricingPlan:
    id: PlanTier
    name: str
    amount: int  # cents
    credits: int
    is_subscription: bool
    features: tuple = field(default_factory=tuple)


PLANS = (
    PricingPlan(PlanTier.NONE, "One-Time", 399, 5, False,
                ("1 Upload", "5 Prompt Variations", "High Res Download")),
    PricingPlan(PlanTier.BASIC, "Basic", 999, 25, True,
                ("25 Edit Credits/mo", "Priority Support")),
    PricingPlan(PlanTier.PRO, "Pro", 1999, 50, True,
                ("50 Edit Credits/mo", "Roll-over credits", "Faster Processing")),
    PricingPlan(PlanTier.ELITE, "Elite", 3499, 100, True,
                ("100 Edit Credits/mo", "Roll-over credits", "Commercial License")),
)


def get_plan(plan_id: str | None) -> PricingPlan | None:
    if not plan_id:
        return None
    for plan in PLANS:
        if plan.id.value == str(plan_id).upper():
            return plan
    return None


def plan_for_amount(amount: int | None) -> PricingPlan | None:
    for plan in PLANS:
        if plan.amount == amount:
            return plan
    return None
