from datetime import datetime

from sqlmodel import Field, SQLModel


class Admin(SQLModel, table=True):
    __tablename__ = "admins"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str
    name: str | None = Field(default=None, max_length=255)
    last_login_at: datetime | None = None
    created_at: datetime | None = Field(default_factory=datetime.utcnow)
