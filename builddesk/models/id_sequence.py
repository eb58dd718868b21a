# builddesk/models/id_sequence.py
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column

from builddesk.db.base import Base


class IdSequence(Base):
    """
    Last allocated sequence number per id prefix.
    Shared by all projects; bumped with a single UPDATE so concurrent
    writers never hand out the same id.
    """

    __tablename__ = "id_sequences"

    prefix :Mapped[str] = mapped_column(String(10), primary_key=True, comment="Id prefix, e.g. PEI")
    last_value :Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<IdSequence prefix={self.prefix} last_value={self.last_value}>"
