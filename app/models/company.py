"""
Revi Audit — Company model (partners and their client companies).
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Industry(str, enum.Enum):
    TECHNOLOGY = "technology"
    HEALTHCARE = "healthcare"
    FINANCE = "finance"
    EDUCATION = "education"
    MANUFACTURING = "manufacturing"
    RETAIL = "retail"
    HOSPITALITY = "hospitality"
    CONSTRUCTION = "construction"
    REAL_ESTATE = "real_estate"
    TRANSPORTATION = "transportation"
    LOGISTICS = "logistics"
    AGRICULTURE = "agriculture"
    MEDIA = "media"
    PROFESSIONAL_SERVICES = "professional_services"
    NON_PROFIT = "non_profit"
    OTHER = "other"


class CompanySize(str, enum.Enum):
    STARTUP = "startup"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ENTERPRISE = "enterprise"


class CompanyType(str, enum.Enum):
    PARTNER = "partner"
    CLIENT = "client"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("forms.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    industry: Mapped[Industry] = mapped_column(
        Enum(Industry, name="industry", values_callable=_enum_values), nullable=False
    )
    size: Mapped[CompanySize] = mapped_column(
        Enum(CompanySize, name="company_size", values_callable=_enum_values), nullable=False
    )
    image_url: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[CompanyType] = mapped_column(
        Enum(CompanyType, name="company_type", values_callable=_enum_values),
        default=CompanyType.CLIENT,
        server_default="client",
        nullable=False,
    )
    partner_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="SET NULL"), index=True, nullable=True
    )
    provider_email: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Where generated reports are delivered"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    partner: Mapped[Optional["Company"]] = relationship(
        "Company", remote_side=[id], back_populates="clients"
    )
    clients: Mapped[list["Company"]] = relationship("Company", back_populates="partner")

    def __repr__(self) -> str:
        return f"<Company {self.name!r} id={self.id} type={self.type}>"
