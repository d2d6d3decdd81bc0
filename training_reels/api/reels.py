"""Reel metadata, transcript and search endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .client import ApiClient
from .models import (
    CreateReelRequest,
    CreateReelResponse,
    GetReelResponse,
    Reel,
    ReelTranscript,
    TranscriptSegment,
    UpdateTranscriptResponse,
    VideoSearchFilters,
    VideoSearchResult,
)
from .uploads import _segment


class ReelsApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def create_reel(self, request: CreateReelRequest) -> CreateReelResponse:
        """Create a reel from a finalized upload."""

        data = await self._client.post("/reels", request.to_payload())
        return CreateReelResponse.model_validate(data)

    async def get_reel(self, reel_id: str) -> GetReelResponse:
        data = await self._client.get(f"/reels/{_segment(reel_id)}")
        return GetReelResponse.model_validate(data)

    async def update_reel(self, reel_id: str, updates: Dict[str, Any]) -> Reel:
        data = await self._client.put(f"/reels/{_segment(reel_id)}", updates)
        return Reel.model_validate(data)

    async def delete_reel(self, reel_id: str) -> None:
        await self._client.delete(f"/reels/{_segment(reel_id)}")

    async def get_transcript(self, reel_id: str) -> ReelTranscript:
        data = await self._client.get(f"/reels/{_segment(reel_id)}/transcript")
        return ReelTranscript.model_validate(data)

    async def update_transcript(
        self, reel_id: str, transcript: str, segments: List[TranscriptSegment]
    ) -> UpdateTranscriptResponse:
        payload = ReelTranscript(transcript=transcript, segments=segments).to_payload()
        data = await self._client.put(f"/reels/{_segment(reel_id)}/transcript", payload)
        return UpdateTranscriptResponse.model_validate(data)

    async def search_reels(self, filters: Optional[VideoSearchFilters] = None) -> VideoSearchResult:
        payload = (filters or VideoSearchFilters()).to_payload()
        data = await self._client.post("/reels/search", payload)
        return VideoSearchResult.model_validate(data)

    async def get_tag_suggestions(self, query: str) -> List[str]:
        data = await self._client.get("/reels/tags/suggestions", params={"q": query})
        return [str(item) for item in data or []]

    async def get_machine_models(self) -> List[str]:
        return [str(item) for item in await self._client.get("/reels/machine-models") or []]

    async def get_process_steps(self) -> List[str]:
        return [str(item) for item in await self._client.get("/reels/process-steps") or []]

    async def get_tooling_options(self) -> List[str]:
        return [str(item) for item in await self._client.get("/reels/tooling-options") or []]


__all__ = ["ReelsApi"]
