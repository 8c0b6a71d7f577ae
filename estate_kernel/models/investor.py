"""
Module: estate_kernel.models.investor
Responsibility: ORM persistence for investors (lessees).
Architecture position: Kernel > Models.  May import from db/base.py only.

Investors have no internal user account.  The only channel to reach them is
email, so ``email`` is what contract and installment notices read.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import TrackedBase


class Investor(TrackedBase):
    __tablename__ = "investors"

    __table_args__ = (
        UniqueConstraint("code", name="uq_investor_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Investor {self.code}>"
