# builddesk/models/agreement.py
from datetime import date

from sqlalchemy import String, Date, Text
from sqlalchemy.orm import Mapped, mapped_column

from builddesk.db.base import Base


class Agreement(Base):
    """
    Contract template: HTML with {{TOKEN}} placeholders.
    """

    __tablename__ = "agreements"

    id :Mapped[str] = mapped_column(String(20), primary_key=True, comment="Agreement id, e.g. AG001")
    name :Mapped[str] = mapped_column(String(255), nullable=False)
    type :Mapped[str] = mapped_column(String(50), nullable=False, default="Construction", comment="Agreement type")
    last_modified :Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    template_content :Mapped[str] = mapped_column(Text, nullable=False, default="", comment="HTML with tokens")

    def __repr__(self) -> str:
        return f"<Agreement id={self.id} name={self.name} type={self.type}>"
