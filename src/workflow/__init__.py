"""Workflow orchestration module."""

from .orchestrator import RepairOrchestrator, FileDisposition, DispositionStatus
from .batch import BatchRepairer

__all__ = [
    'RepairOrchestrator',
    'FileDisposition',
    'DispositionStatus',
    'BatchRepairer'
]
