"""
Domain package for the range reader service.

Exports the row model and the partition plan used by the fetchers.
Keep this package focused on data definitions and validation concerns.
"""

from range_reader.domain.models import KeyRange, PartitionPlan, Record, plan_partitions

__all__ = [
    "KeyRange",
    "PartitionPlan",
    "Record",
    "plan_partitions",
]
