"""Wire models for the training reels REST API."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


JobStatus = Literal[
    "queued", "processing", "transcoding", "transcribing", "tagging", "complete", "error"
]
RemoteUploadStatus = Literal["uploading", "processing", "complete", "error"]
Privacy = Literal["internal", "customer", "public"]
ReelStatus = Literal["draft", "pending_qa", "approved", "published", "archived"]


class ApiModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class InitiateUploadRequest(ApiModel):
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., ge=0)
    file_type: str
    chunk_count: int = Field(..., ge=0)


class InitiateUploadResponse(ApiModel):
    upload_id: str
    chunk_urls: List[str] = Field(default_factory=list)
    expires_at: Optional[str] = None


class CompletedPart(ApiModel):
    chunk_number: int
    etag: str


class CompleteUploadRequest(ApiModel):
    upload_id: str
    chunks: List[CompletedPart] = Field(default_factory=list)


class CompleteUploadResponse(ApiModel):
    success: bool
    reel_id: Optional[str] = None
    processing_job_id: Optional[str] = None


class ProcessingJob(ApiModel):
    id: Optional[str] = None
    upload_id: Optional[str] = None
    status: JobStatus
    progress: float = 0
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    estimated_completion: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {"complete", "error"}


class UploadStatusResponse(ApiModel):
    status: RemoteUploadStatus
    progress: float = 0
    reel_id: Optional[str] = None
    error: Optional[str] = None
    processing_job: Optional[ProcessingJob] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {"complete", "error"}


class TranscodingResult(ApiModel):
    hls_url: str
    thumbnail_url: str
    duration: float
    resolution: str
    codec: str
    file_size: int


class QueueStatus(ApiModel):
    queue_length: int
    estimated_wait_time: float
    active_jobs: int


class CreateReelRequest(ApiModel):
    upload_id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    machine_model: Optional[str] = None
    process_step: Optional[str] = None
    tooling: List[str] = Field(default_factory=list)
    privacy: Privacy = "internal"
    customer_allocations: Optional[List[str]] = None


class Tag(ApiModel):
    id: Optional[str] = None
    name: str
    category: Optional[str] = None


class Reel(ApiModel):
    id: str
    title: str
    description: Optional[str] = None
    duration: Optional[float] = None
    hls_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tags: List[Tag] = Field(default_factory=list)
    machine_model: Optional[str] = None
    process_step: Optional[str] = None
    tooling: List[str] = Field(default_factory=list)
    status: Optional[ReelStatus] = None
    privacy: Optional[Privacy] = None
    customer_allocations: List[str] = Field(default_factory=list)
    view_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreateReelResponse(ApiModel):
    reel: Reel
    processing_job: Optional[ProcessingJob] = None


class GetReelResponse(ApiModel):
    reel: Reel
    playback_url: str
    can_edit: bool = False
    can_delete: bool = False
    can_download: bool = False
    can_share: bool = False


class TranscriptSegment(ApiModel):
    id: Optional[str] = None
    start: float
    end: float
    text: str
    confidence: Optional[float] = None
    speaker: Optional[str] = None


class ReelTranscript(ApiModel):
    transcript: str
    segments: List[TranscriptSegment] = Field(default_factory=list)


class Transcript(ApiModel):
    id: Optional[str] = None
    text: str
    segments: List[TranscriptSegment] = Field(default_factory=list)
    confidence: Optional[float] = None
    language: Optional[str] = None


class UpdateTranscriptResponse(ApiModel):
    success: bool
    transcript: Optional[Transcript] = None


class VideoSearchFilters(ApiModel):
    query: Optional[str] = None
    tags: Optional[List[str]] = None
    machine_models: Optional[List[str]] = None
    process_steps: Optional[List[str]] = None
    duration_min: Optional[float] = None
    duration_max: Optional[float] = None
    authors: Optional[List[str]] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    status: Optional[List[str]] = None
    privacy: Optional[List[str]] = None


class FacetItem(ApiModel):
    value: str
    count: int
    label: Optional[str] = None


class VideoSearchFacets(ApiModel):
    tags: List[FacetItem] = Field(default_factory=list)
    machine_models: List[FacetItem] = Field(default_factory=list)
    process_steps: List[FacetItem] = Field(default_factory=list)
    authors: List[FacetItem] = Field(default_factory=list)
    durations: List[FacetItem] = Field(default_factory=list)


class VideoSearchResult(ApiModel):
    reels: List[Reel] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 0
    facets: VideoSearchFacets = Field(default_factory=VideoSearchFacets)


__all__ = [
    "ApiModel",
    "CompleteUploadRequest",
    "CompleteUploadResponse",
    "CompletedPart",
    "CreateReelRequest",
    "CreateReelResponse",
    "FacetItem",
    "GetReelResponse",
    "InitiateUploadRequest",
    "InitiateUploadResponse",
    "JobStatus",
    "Privacy",
    "ProcessingJob",
    "QueueStatus",
    "Reel",
    "ReelStatus",
    "ReelTranscript",
    "RemoteUploadStatus",
    "Tag",
    "TranscodingResult",
    "Transcript",
    "TranscriptSegment",
    "UpdateTranscriptResponse",
    "UploadStatusResponse",
    "VideoSearchFacets",
    "VideoSearchFilters",
    "VideoSearchResult",
]
