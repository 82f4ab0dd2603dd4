from .cleaner import apply_cleaning
from .enricher import to_delivery_frame
from .loader import RawRowNormalizer
from .validator import IngestionResult, RejectedRow, validate_rows

__all__ = [
    "IngestionResult",
    "RawRowNormalizer",
    "RejectedRow",
    "apply_cleaning",
    "to_delivery_frame",
    "validate_rows",
]
