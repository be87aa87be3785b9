"""Domain models for the Fondant sheet search tool.

Records and datasets produced by a load, query requests/results, and the
error record written when a reload fails.
"""

from .error_record import ErrorRecord
from .query import FieldMatch, QueryRequest, QueryResult, QueryStatus, RequestKind, ScoredResult
from .records import ID_FIELD, Dataset, RawTable, Record, RecordGroup

__all__ = [
    # Record models
    "ID_FIELD",
    "RawTable",
    "Record",
    "RecordGroup",
    "Dataset",
    # Query models
    "RequestKind",
    "QueryRequest",
    "QueryStatus",
    "ScoredResult",
    "FieldMatch",
    "QueryResult",
    # Error log
    "ErrorRecord",
]
