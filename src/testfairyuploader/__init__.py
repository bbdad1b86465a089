"""
TestFairy Uploader - upload, instrument and re-sign Android builds from CI
"""

__version__ = "1.0.0"

from .core import WorkflowOrchestrator, WorkflowState
from .errors import TestFairyError

__all__ = ["WorkflowOrchestrator", "WorkflowState", "TestFairyError"]
