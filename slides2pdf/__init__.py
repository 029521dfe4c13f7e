"""
slides2pdf - Download hosted documents as PDF

This is the main public API module.
"""

from .core.models import DocumentJob, OutputArtifact
from .core.orchestrator import DocumentDownloader

__version__ = "0.1.0"
__all__ = [
    "DocumentDownloader",
    "DocumentJob",
    "OutputArtifact",
]
