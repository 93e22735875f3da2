from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from imagery.database import Base
from imagery.models.profile import utcnow


class Payment(Base):
    """Reconciled payment; one row per Stripe object that granted credits.

    The reference is the checkout session, payment intent or invoice id, so
    a second reconciliation of the same object hits the primary key.
    """
    __tablename__ = "payments"

    reference = Column(String, primary_key=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String, nullable=False)  # 'checkout', 'payment_intent' or 'invoice'
    amount_total = Column(Integer, nullable=False)
    currency = Column(String, nullable=True)
    credits_added = Column(Integer, nullable=False, default=0)
    plan = Column(String, nullable=True)
    status = Column(String, nullable=False, default="SUCCESS")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.reference,
            "kind": self.kind,
            "amount": self.amount_total,
            "currency": self.currency,
            "credits": self.credits_added,
            "plan": self.plan,
            "status": self.status,
            "date": self.created_at.isoformat() if self.created_at else None,
        }
