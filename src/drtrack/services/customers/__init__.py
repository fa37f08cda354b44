"""Customer service helpers."""

from .dedup import find_duplicate_groups, merge_duplicates, merge_group
from .service import CustomerService, validate_customer

__all__ = [
    "CustomerService",
    "find_duplicate_groups",
    "merge_duplicates",
    "merge_group",
    "validate_customer",
]
