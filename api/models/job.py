"""
Job models: uploaded assets, job specifications, results and API schemas
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class JobKind(str, Enum):
    """Operation kinds the service can run."""
    TRIM = "trim"
    NORMALIZE = "normalize"
    IMAGE_TO_VIDEO = "image_to_video"
    MERGE = "merge"
    REPEAT = "repeat"


class UploadedAsset(BaseModel):
    """A file received over HTTP and stored under a generated name."""
    model_config = ConfigDict(frozen=True)

    handle: str
    backend: str
    stored_path: Path
    original_name: Optional[str] = None
    size_bytes: int = 0
    mime_hint: Optional[str] = None

    @property
    def url(self) -> str:
        return f"/{self.backend}/{self.handle}"


class TrimJob(BaseModel):
    kind: Literal[JobKind.TRIM] = JobKind.TRIM
    source: UploadedAsset
    start: str
    end: str


class NormalizeJob(BaseModel):
    """Transcode an arbitrary upload into the fixed audio profile."""
    kind: Literal[JobKind.NORMALIZE] = JobKind.NORMALIZE
    source: UploadedAsset


class ImageToVideoJob(BaseModel):
    kind: Literal[JobKind.IMAGE_TO_VIDEO] = JobKind.IMAGE_TO_VIDEO
    image: UploadedAsset
    duration: int = Field(gt=0)


class MergeJob(BaseModel):
    """Video stream from ``video``, audio stream from ``audio``."""
    kind: Literal[JobKind.MERGE] = JobKind.MERGE
    video: UploadedAsset
    audio: UploadedAsset


class RepeatJob(BaseModel):
    kind: Literal[JobKind.REPEAT] = JobKind.REPEAT
    audio: UploadedAsset
    count: int = Field(ge=1, le=100)


JobSpec = Annotated[
    Union[TrimJob, NormalizeJob, ImageToVideoJob, MergeJob, RepeatJob],
    Field(discriminator="kind"),
]


def job_inputs(spec: JobSpec) -> list:
    """Uploaded assets consumed by a job, in command order."""
    if isinstance(spec, (TrimJob, NormalizeJob)):
        return [spec.source]
    if isinstance(spec, ImageToVideoJob):
        return [spec.image]
    if isinstance(spec, MergeJob):
        return [spec.video, spec.audio]
    if isinstance(spec, RepeatJob):
        return [spec.audio]
    raise TypeError(f"Unknown job spec: {type(spec).__name__}")


@dataclass(frozen=True)
class Artifact:
    """Successful job outcome."""
    path: Path
    url: str


@dataclass(frozen=True)
class Failure:
    """Failed job outcome. ``stage`` is one of spawn, engine, timeout, probe."""
    stage: str
    diagnostic: str


JobResult = Union[Artifact, Failure]


# API schemas

class TrimRequest(BaseModel):
    """Body of POST /trim. Fields are optional so missing ones map to 400."""
    model_config = ConfigDict(populate_by_name=True)

    start: Optional[str] = None
    end: Optional[str] = None
    file_path: Optional[str] = Field(None, alias="filePath")


class UploadResponse(BaseModel):
    path: str
    duration: str


class TrimResponse(BaseModel):
    trimmed: str


class RepeatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_url: str = Field(serialization_alias="audioUrl")
