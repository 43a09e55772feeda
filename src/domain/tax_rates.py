"""Tax-rate records and the granularity precedence order.

A municipality can hold several records whose validity periods overlap, for
example a yearly default with a few daily exceptions. The granularity of a
record is its precedence class: the more specific the period, the higher the
precedence, so a daily rate outranks a weekly, monthly or yearly one.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum

from src.core.exceptions import InvalidRecordError


class Granularity(IntEnum):
    """Length class of a validity period.

    The integer value is the precedence rank: a lower value is more specific
    and wins over every higher value when both periods cover the same day.
    """

    DAILY = 1
    WEEKLY = 2
    MONTHLY = 3
    YEARLY = 4

    @classmethod
    def from_rank(cls, rank: object) -> "Granularity":
        """Convert a wire ``period_type`` rank into a Granularity.

        Args:
            rank: The integer rank (1 = daily ... 4 = yearly).

        Returns:
            Granularity: The matching member.

        Raises:
            InvalidRecordError: If the rank is not one of 1, 2, 3 or 4.
        """
        # bool is an int subclass
        if isinstance(rank, bool) or not isinstance(rank, int):
            raise InvalidRecordError(
                "Granularity must be an integer between 1 and 4",
                context={"field": "granularity", "value": repr(rank)},
            )
        try:
            return cls(rank)
        except ValueError as e:
            raise InvalidRecordError(
                "Granularity must be an integer between 1 and 4",
                context={"field": "granularity", "value": rank},
                cause=e,
            ) from e


@dataclass(frozen=True, slots=True)
class TaxRateRecord:
    """One immutable fact: ``rate`` applies to ``jurisdiction`` on every day
    from ``valid_from`` to ``valid_to`` inclusive.

    ``record_id`` is assigned by the store on insert and is ignored when
    records are compared.
    """

    jurisdiction: str
    granularity: Granularity
    valid_from: date
    valid_to: date
    rate: float
    record_id: int | None = field(default=None, compare=False)

    def covers(self, day: date) -> bool:
        """Whether ``day`` falls inside the closed validity interval."""
        return self.valid_from <= day <= self.valid_to


def validate_record(record: TaxRateRecord) -> TaxRateRecord:
    """Check a record against the invariants every store enforces on insert.

    Args:
        record: The record submitted for insertion.

    Returns:
        TaxRateRecord: The record with the granularity normalized to a
            Granularity member. The jurisdiction is stored as given.

    Raises:
        InvalidRecordError: If any invariant is violated.
    """
    jurisdiction = record.jurisdiction
    if not isinstance(jurisdiction, str) or not jurisdiction.strip():
        raise InvalidRecordError(
            "Jurisdiction must be a non-empty string",
            context={"field": "jurisdiction"},
        )

    granularity = Granularity.from_rank(record.granularity)

    for field_name in ("valid_from", "valid_to"):
        value = getattr(record, field_name)
        # datetime is a date subclass but does not compare with one
        if isinstance(value, datetime) or not isinstance(value, date):
            raise InvalidRecordError(
                f"{field_name} must be a calendar date",
                context={"field": field_name},
            )
    if record.valid_from > record.valid_to:
        raise InvalidRecordError(
            "valid_from must not be later than valid_to",
            context={
                "field": "valid_from",
                "valid_from": record.valid_from.isoformat(),
                "valid_to": record.valid_to.isoformat(),
            },
        )

    rate = record.rate
    if (
        isinstance(rate, bool)
        or not isinstance(rate, (int, float))
        or not math.isfinite(rate)
        or rate < 0
    ):
        raise InvalidRecordError(
            "Rate must be a finite, non-negative number",
            context={"field": "rate", "value": repr(rate)},
        )

    return TaxRateRecord(
        jurisdiction=jurisdiction,
        granularity=granularity,
        valid_from=record.valid_from,
        valid_to=record.valid_to,
        rate=float(rate),
        record_id=record.record_id,
    )
