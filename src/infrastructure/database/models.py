"""ORM mapping of the ``tax_records`` table."""

from datetime import date

from sqlalchemy import CheckConstraint, Date, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.domain.tax_rates import Granularity, TaxRateRecord
from src.infrastructure.database.base import BaseModel

MUNICIPALITY_MAX_LENGTH = 255


class TaxRateRecordModel(BaseModel):
    """Persistent row of the append-only tax-rate log.

    The check constraints repeat the insert-time validation so that rows
    written around the application (migrations, manual SQL) keep the table
    queryable.
    """

    __tablename__ = "tax_records"
    __table_args__ = (
        CheckConstraint("period_type BETWEEN 1 AND 4", name="period_type_range"),
        CheckConstraint("date_start <= date_end", name="date_range"),
        CheckConstraint("tax_rate >= 0", name="tax_rate_non_negative"),
        CheckConstraint("length(municipality) > 0", name="municipality_not_empty"),
        Index("ix_tax_records_municipality_period_type", "municipality", "period_type"),
        {"sqlite_autoincrement": True},
    )

    municipality: Mapped[str] = mapped_column(
        String(MUNICIPALITY_MAX_LENGTH), nullable=False
    )
    period_type: Mapped[int] = mapped_column(Integer, nullable=False)
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)
    tax_rate: Mapped[float] = mapped_column(Float, nullable=False)

    @classmethod
    def from_domain(cls, record: TaxRateRecord) -> "TaxRateRecordModel":
        """Build a row from a validated domain record."""
        return cls(
            municipality=record.jurisdiction,
            period_type=int(record.granularity),
            date_start=record.valid_from,
            date_end=record.valid_to,
            tax_rate=record.rate,
        )

    def to_domain(self) -> TaxRateRecord:
        """Convert the row back into an immutable domain record."""
        return TaxRateRecord(
            jurisdiction=self.municipality,
            granularity=Granularity(self.period_type),
            valid_from=self.date_start,
            valid_to=self.date_end,
            rate=self.tax_rate,
            record_id=self.id,
        )
