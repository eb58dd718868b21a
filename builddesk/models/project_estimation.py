# builddesk/models/project_estimation.py
from sqlalchemy import (
    String,
    Numeric,
    DateTime,
    Integer,
    Boolean,
    Text,
    ForeignKey,
    Index,
    text,
)
from builddesk.db.base import Base
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


class ProjectEstimation(Base):
    """
    Versioned estimation snapshot for a project.

    Invariants:
    - at most one active estimation per project (partial unique index below)
    - version strictly increasing per project, never reused
    - total_amount == sum(items.amount)
    """

    __tablename__ = "project_estimations"

    # =========
    # 🔒 Identity & ownership
    # =========
    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Estimation id, e.g. PE001")

    project_id :Mapped[str] = mapped_column(
        String(20),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Project id",
    )
    # 历史引用，模板删除后保留
    template_id :Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="Source template id")

    version :Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Incremental estimation version for the project",
    )
    name :Mapped[str] = mapped_column(String(255), nullable=False)

    # =========
    # 💰 Snapshot
    # =========
    total_amount :Mapped[Decimal] = mapped_column(
        Numeric(18, 5),
        nullable=False,
        default=Decimal("0"),
        comment="Sum of item amounts, recomputed on every item mutation",
    )

    # =========
    # 📌 Status
    # =========
    is_active :Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("0"),
        comment="Whether this version is the project's active estimation",
    )

    # =========
    # ⏱ Timestamps
    # =========
    created_date :Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_date :Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    items :Mapped[List["ProjectEstimationItem"]] = relationship(
        back_populates="estimation",
        cascade="all, delete-orphan",
        order_by="ProjectEstimationItem.position",
    )

    __table_args__ = (
        Index(
            "uq_project_estimations_one_active",
            "project_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_project_estimations_project_version", "project_id", "version", unique=True),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectEstimation id={self.id} "
            f"project={self.project_id} "
            f"version={self.version} "
            f"active={self.is_active} "
            f"total={self.total_amount}>"
        )


class ProjectEstimationItem(Base):
    __tablename__ = "project_estimation_items"

    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Item id, e.g. PEI001")
    estimation_id :Mapped[str] = mapped_column(
        String(20),
        ForeignKey("project_estimations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line_item_id :Mapped[str] = mapped_column(String(20), nullable=False, comment="Catalog line item id")

    # =========
    # 🔢 Quantity & pricing (rate snapshotted at creation)
    # =========
    quantity :Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    rate :Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    amount :Mapped[Decimal] = mapped_column(
        Numeric(18, 5),
        nullable=False,
        comment="quantity * rate",
    )
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position :Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    estimation :Mapped[ProjectEstimation] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<ProjectEstimationItem id={self.id} qty={self.quantity} rate={self.rate} amount={self.amount}>"


class EstimationVersionCounter(Base):
    """
    High-water mark of estimation versions per project.
    Survives deletion of the newest estimation so versions are never reused.
    """

    __tablename__ = "estimation_version_counters"

    project_id :Mapped[str] = mapped_column(
        String(20),
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    )
    last_version :Mapped[int] = mapped_column(Integer, nullable=False, default=0)
