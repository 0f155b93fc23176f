"""
Job models
"""
from .job import (
    Artifact,
    Failure,
    ImageToVideoJob,
    JobKind,
    JobResult,
    JobSpec,
    MergeJob,
    NormalizeJob,
    RepeatJob,
    TrimJob,
    UploadedAsset,
)

__all__ = [
    "Artifact",
    "Failure",
    "ImageToVideoJob",
    "JobKind",
    "JobResult",
    "JobSpec",
    "MergeJob",
    "NormalizeJob",
    "RepeatJob",
    "TrimJob",
    "UploadedAsset",
]
