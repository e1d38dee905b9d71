"""Pipeline modules.

- store: Partitioned Parquet store
- ingest: Source to store ingestion
- aggregator: Per-partition diversity aggregation
- orchestrator: Main pipeline controller
"""

from hexdiv.pipeline.store import PartitionedStore
from hexdiv.pipeline.ingest import IngestProcessor
from hexdiv.pipeline.aggregator import AggregationOrchestrator
from hexdiv.pipeline.orchestrator import PipelineOrchestrator

__all__ = [
    "PartitionedStore",
    "IngestProcessor",
    "AggregationOrchestrator",
    "PipelineOrchestrator",
]
