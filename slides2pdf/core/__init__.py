"""
slides2pdf - Download hosted slide decks and documents as PDF

This package scrapes page images from document-sharing sites, downloads
them and assembles them into a single PDF, falling back through several
extraction strategies when one finds nothing.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .models import AssetCandidate, DocumentJob, JobStatus, OutputArtifact
from .orchestrator import DocumentDownloader

__all__ = [
    "AssetCandidate",
    "DocumentDownloader",
    "DocumentJob",
    "JobStatus",
    "OutputArtifact",
]
