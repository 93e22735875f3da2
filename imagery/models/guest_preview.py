from sqlalchemy import Column, DateTime, Integer, String

from imagery.database import Base
from imagery.models.profile import utcnow


class GuestPreview(Base):
    __tablename__ = "guest_previews"

    client_key = Column(String, primary_key=True)
    count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
