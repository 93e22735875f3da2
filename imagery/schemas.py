from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateRequest(CamelModel):
    # Optional so that a missing field is answered with our own 400 message
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")
    prompt: Optional[str] = None


class VerifyCheckoutRequest(CamelModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    image_id: Optional[str] = Field(default=None, alias="imageId")


class CheckoutSessionRequest(CamelModel):
    plan_id: Optional[str] = Field(default=None, alias="planId")
    image_id: Optional[str] = Field(default=None, alias="imageId")


class PaymentIntentRequest(CamelModel):
    plan_id: Optional[str] = Field(default=None, alias="planId")


class UserStatusUpdate(CamelModel):
    is_active: bool = Field(alias="isActive")


class UserCreditsUpdate(CamelModel):
    credits: int = Field(ge=0)
