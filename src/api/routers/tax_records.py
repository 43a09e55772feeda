"""Routes for reading, resolving and submitting tax-rate records."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query, status
from loguru import logger

from src.api.schemas.tax_records import RecordCreatedResponse, TaxRecordSchema
from src.core.exceptions import RateNotFoundError, ValidationError
from src.infrastructure.database.dependencies import RateResolverDep, RecordStoreDep

router = APIRouter(prefix="/records", tags=["tax records"])


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` date.

    Raises:
        ValidationError: If the value is not a valid calendar date.
    """
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(
            "Invalid date format", context={"date": value}, cause=e
        ) from e


@router.get("")
async def list_records(store: RecordStoreDep) -> list[TaxRecordSchema]:
    """Return every stored record of every municipality."""
    records = await store.list_records()
    return [TaxRecordSchema.from_domain(record) for record in records]


@router.get("/{municipality}")
async def get_municipality_records(
    municipality: str,
    resolver: RateResolverDep,
    day: Annotated[
        str | None,
        Query(alias="date", description="Day to resolve, as YYYY-MM-DD"),
    ] = None,
) -> list[TaxRecordSchema]:
    """Return the records of a municipality.

    Without a date every record is returned, without applying precedence.
    With a date the list holds the one record that applies on that day, or
    nothing when no period covers it.
    """
    if not day:
        records = await resolver.resolve_all_for_jurisdiction(municipality)
        return [TaxRecordSchema.from_domain(record) for record in records]

    parsed = parse_date(day)
    try:
        record = await resolver.resolve(municipality, parsed)
    except RateNotFoundError:
        logger.info(
            "No applicable rate", municipality=municipality, date=parsed.isoformat()
        )
        return []
    return [TaxRecordSchema.from_domain(record)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_record(
    payload: TaxRecordSchema, store: RecordStoreDep
) -> RecordCreatedResponse:
    """Store a new record. The stored record is not echoed back.

    The row is committed before the response is built, so a 201 always means
    the record is durable and visible to the next request.
    """
    record_id = await store.insert(payload.to_domain())
    await store.commit()
    return RecordCreatedResponse(id=record_id)
