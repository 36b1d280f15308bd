"""Media upload pipeline: staging, probing, fast-start remuxing, remote storage."""

from tubely.modules.upload.authorizer import UploadAuthorizer
from tubely.modules.upload.config import UploadConfig
from tubely.modules.upload.intake import StagedFile, stage
from tubely.modules.upload.pipeline import UploadPipeline
from tubely.modules.upload.probe import AspectClass, MediaProbe, classify_aspect_ratio
from tubely.modules.upload.process import AsyncProcessRunner, ProcessResult, ProcessRunner
from tubely.modules.upload.transcoder import FastStartTranscoder
from tubely.modules.upload.uploader import ObjectStoreUploader, build_storage_key

__all__ = [
    "UploadAuthorizer",
    "UploadConfig",
    "StagedFile",
    "stage",
    "UploadPipeline",
    "AspectClass",
    "MediaProbe",
    "classify_aspect_ratio",
    "AsyncProcessRunner",
    "ProcessResult",
    "ProcessRunner",
    "FastStartTranscoder",
    "ObjectStoreUploader",
    "build_storage_key",
]
