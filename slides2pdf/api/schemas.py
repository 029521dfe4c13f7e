"""
Request and response models for the HTTP API
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DownloadRequest(BaseModel):
    url: str = ""
    mode: str = "/i"


class DownloadStarted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    download_id: str = Field(alias="downloadId")
    status: str = "started"


class DownloadStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    progress: int = 0
    message: str = ""
    filename: Optional[str] = None
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    error: Optional[str] = None
    strategy: Optional[str] = None
    pages: int = 0


class ConfigView(BaseModel):
    output: str
    filename: str
    rendertime: str


class DownloadedFile(BaseModel):
    name: str
    path: str
    size: int
    created: datetime
