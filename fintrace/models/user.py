"""
FinTrace Forensics - User Model

Users are provisioned by the host dashboard's identity system.
This service only reads them to resolve the caller of a request
and to scope investigations and ledger snapshots by owner.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrace.models.base import BaseModel

if TYPE_CHECKING:
    from fintrace.models.forensic import Investigation


class User(BaseModel):
    """Dashboard user who owns investigations and ledger transactions."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    investigations: Mapped[List["Investigation"]] = relationship(
        "Investigation",
        back_populates="owner",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
