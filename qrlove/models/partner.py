from datetime import datetime

from sqlmodel import Field, SQLModel

PARTNER_STATUSES = ("ativo", "inativo", "pendente")


class Partner(SQLModel, table=True):
    __tablename__ = "partners"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    status: str = Field(default="pendente", max_length=16)  # ativo | inativo | pendente
    notes: str | None = None
    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)
