# builddesk/models/line_item.py
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from builddesk.db.base import Base


class LineItem(Base):
    """
    Priced, categorized catalog unit (material or labor rate).
    The rate is the current price only; estimations snapshot it.
    """

    __tablename__ = "line_items"

    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Line item id, e.g. LI001")

    name :Mapped[str] = mapped_column(String(255), nullable=False, comment="Display name")
    category :Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="General",
        comment="Catalog category, e.g. Building Materials / Labor",
    )
    unit :Mapped[str] = mapped_column(String(50), nullable=False, comment="Unit of quantity, e.g. Bag / Day")

    rate :Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        comment="Current unit price (> 0)",
    )

    description :Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free text description")

    def __repr__(self) -> str:
        return f"<LineItem id={self.id} name={self.name} rate={self.rate}>"
