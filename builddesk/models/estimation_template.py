# builddesk/models/estimation_template.py
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import String, Numeric, Integer, Date, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from builddesk.db.base import Base


class EstimationTemplate(Base):
    """
    Reusable blueprint of line-item references with quantities.
    Estimations copy the items; editing a template never touches them.
    """

    __tablename__ = "estimation_templates"

    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Template id, e.g. ET001")
    name :Mapped[str] = mapped_column(String(255), nullable=False, comment="Template name")
    category :Mapped[str] = mapped_column(String(100), nullable=False, default="General", comment="Template category")

    items_count :Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of items, maintained by CatalogService",
    )
    last_modified :Mapped[date] = mapped_column(Date, nullable=False, default=date.today, comment="Last edit day")

    items :Mapped[List["EstimationTemplateItem"]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="EstimationTemplateItem.position",
    )

    def __repr__(self) -> str:
        return f"<EstimationTemplate id={self.id} name={self.name} items={self.items_count}>"


class EstimationTemplateItem(Base):
    __tablename__ = "estimation_template_items"

    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Template item id, e.g. ETI001")
    template_id :Mapped[str] = mapped_column(
        String(20),
        ForeignKey("estimation_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # 不加外键：line item 删除后允许模板残留引用（catalog drift）
    line_item_id :Mapped[str] = mapped_column(String(20), nullable=False, comment="Referenced LineItem id")
    quantity :Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, comment="Quantity (> 0)")
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position :Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order inside the template")

    template :Mapped[EstimationTemplate] = relationship(back_populates="items")
