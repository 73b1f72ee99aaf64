"""Model token limits: reference table loader and catalog."""

from chunkflow.limits.catalog import ModelLimitsCatalog
from chunkflow.limits.loader import GLOBAL_DEFAULT, LimitsTable, load_limits_table

__all__ = [
    "GLOBAL_DEFAULT",
    "LimitsTable",
    "ModelLimitsCatalog",
    "load_limits_table",
]
