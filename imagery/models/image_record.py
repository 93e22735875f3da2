import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from imagery.database import Base
from imagery.models.profile import utcnow


class ImageRecord(Base):
    __tablename__ = "image_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    original_image_base64 = Column(Text, nullable=False)
    generated_image_base64 = Column(Text, nullable=True)  # null while pending
    prompt = Column(String, nullable=False)
    is_unlocked = Column(Boolean, nullable=False, default=False)
    is_free_preview = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "userId": str(self.user_id),
            "originalImageBase64": self.original_image_base64,
            "generatedImageBase64": self.generated_image_base64,
            "prompt": self.prompt,
            "isUnlocked": self.is_unlocked,
            "isFreePreview": self.is_free_preview,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
        }
