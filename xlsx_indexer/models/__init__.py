"""Domain models for the spreadsheet -> Elasticsearch indexer."""

from .config_models import ElasticsearchConfig, FieldNameConfig, IndexerConfig
from .error_record import ErrorRecord
from .processing_result import BatchFailure, BatchMetrics, BatchResult, IngestReport
from .row_data import TabularRow

__all__ = [
    # Configuration models
    "ElasticsearchConfig",
    "FieldNameConfig",
    "IndexerConfig",
    # Processing models
    "BatchFailure",
    "BatchMetrics",
    "BatchResult",
    "ErrorRecord",
    "IngestReport",
    "TabularRow",
]
