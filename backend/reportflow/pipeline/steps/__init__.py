"""Workflow steps, in execution order."""

from reportflow.pipeline.steps.credentials import FetchCookieStep, FetchTokenStep
from reportflow.pipeline.steps.download_file import DownloadSourceStep
from reportflow.pipeline.steps.request_analysis import RequestAnalysisStep
from reportflow.pipeline.steps.upload_file import UploadToStorageStep

__all__ = [
    "DownloadSourceStep",
    "FetchCookieStep",
    "FetchTokenStep",
    "RequestAnalysisStep",
    "UploadToStorageStep",
]
