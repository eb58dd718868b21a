# builddesk/models/project.py
from builddesk.db.base import Base
from builddesk.db.enums import ProjectStatus, TimelineEventStatus
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import String, Date, DateTime, Enum, Integer, Numeric, Text, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Project(Base):
    __tablename__ = "projects"

    # =========
    # 🔒 Immutable facts
    # =========
    id :Mapped[str] = mapped_column(
        String(20),
        primary_key=True,
        comment='Project id, e.g. PRJ001')
    date_created :Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
        comment='Creation day')

    # =========
    # ✍️ Client information (edit appends a timeline event)
    # =========
    client_name :Mapped[str] = mapped_column(String(255), nullable=False, comment="Client name")
    client_address :Mapped[str] = mapped_column(Text, nullable=False, comment="Client postal address")
    phone_number :Mapped[str] = mapped_column(String(50), nullable=False, comment="Client phone number")
    email :Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Client email (optional)")

    # =========
    # ✍️ Project details
    # =========
    name :Mapped[str] = mapped_column(String(255), nullable=False, comment="Project name")
    project_address :Mapped[str] = mapped_column(Text, nullable=False, default="", comment="Site address")
    agreement_date :Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="Agreement day")
    project_type :Mapped[str] = mapped_column(String(100), nullable=False, default="Residential")
    number_of_floors :Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    project_duration :Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Duration in months")
    estimated_budget :Mapped[Decimal] = mapped_column(
        Numeric(16, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Budget used when no estimation is active",
    )

    # =========
    # 🔁 Lifecycle
    # =========
    status :Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProjectStatus.NEW,
        comment="Project lifecycle status",
    )

    timeline :Mapped[List["TimelineEvent"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        # id 前缀固定，先比长度再比字符串即为按序号比较，"TL1000" 排在 "TL999" 前面
        order_by=lambda: [
            TimelineEvent.date.desc(),
            func.length(TimelineEvent.id).desc(),
            TimelineEvent.id.desc(),
        ],
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name} status={self.status.value if self.status else None}>"


class TimelineEvent(Base):
    """
    Append-only project log entry. Never updated, never deleted on its own.
    """

    __tablename__ = "timeline_events"

    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Event id, e.g. TL001")
    project_id :Mapped[str] = mapped_column(
        String(20),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title :Mapped[str] = mapped_column(String(255), nullable=False)
    date :Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    status :Mapped[TimelineEventStatus] = mapped_column(
        Enum(TimelineEventStatus, name="timeline_event_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TimelineEventStatus.completed,
    )
    description :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    project :Mapped[Project] = relationship(back_populates="timeline")

    def __repr__(self) -> str:
        return f"<TimelineEvent id={self.id} title={self.title} date={self.date}>"
