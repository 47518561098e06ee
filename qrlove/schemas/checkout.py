from pydantic import BaseModel, ConfigDict, Field


class QuoteRequest(BaseModel):
    """Prévia do preço no formulário: plano + código promocional opcional."""

    model_config = ConfigDict(populate_by_name=True)

    plan_id: int = Field(alias="planId")
    promo_code: str | None = Field(default=None, alias="promoCode")


class QuoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: int = Field(serialization_alias="planId")
    plan_name: str = Field(serialization_alias="planName")
    base_amount: int = Field(serialization_alias="baseAmount")
    discount_amount: int = Field(serialization_alias="discountAmount")
    final_amount: int = Field(serialization_alias="finalAmount")
    currency: str
    promo_code: str | None = Field(default=None, serialization_alias="promoCode")
    discount_source: str | None = Field(default=None, serialization_alias="discountSource")


class CheckoutSessionResponse(BaseModel):
    id: str
    url: str | None = None


class PlanOut(BaseModel):
    id: int
    name: str
    price: int
