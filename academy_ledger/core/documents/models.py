from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from academy_ledger.core.database.base import Base


class DocumentCounter(Base):
    """One monotonically increasing sequence per document category."""

    __tablename__ = "document_counters"

    # invoice_A | invoice_B | receipt
    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
