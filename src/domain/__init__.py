"""Domain layer: tax-rate records and rate resolution.

- **tax_rates**: Granularity precedence, the immutable record and its
  validation rules
- **stores**: The RecordStore contract and an in-memory implementation
- **resolver**: Picks the single applicable rate for a municipality and day

Nothing in this package depends on FastAPI or SQLAlchemy; the persistent
store lives in the infrastructure layer.
"""

from src.domain.resolver import RateResolver
from src.domain.stores import InMemoryRecordStore, RecordStore
from src.domain.tax_rates import Granularity, TaxRateRecord, validate_record

__all__ = [
    "Granularity",
    "InMemoryRecordStore",
    "RateResolver",
    "RecordStore",
    "TaxRateRecord",
    "validate_record",
]
