from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from typing import Optional, List


class NarratorCreate(BaseModel):
    name: str
    role_prompt: str
    style_prompt: Optional[str] = None
    voice: Optional[str] = None
    sample_path: Optional[str] = None
    temperature: float = 0.7
    is_default: bool = False


class NarratorUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""
    name: Optional[str] = None
    role_prompt: Optional[str] = None
    style_prompt: Optional[str] = None
    voice: Optional[str] = None
    sample_path: Optional[str] = None
    temperature: Optional[float] = None
    is_default: Optional[bool] = None


class NarratorResponse(BaseModel):
    id: int
    name: str
    role_prompt: str
    style_prompt: Optional[str] = None
    voice: Optional[str] = None
    sample_path: Optional[str] = None
    temperature: float
    is_default: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    clip_count: Optional[int] = None
    ready_clip_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class NarratorListResponse(BaseModel):
    narrators: List[NarratorResponse]


class NarratorSampleResponse(BaseModel):
    id: int
    label: str
    file_path: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NarratorSampleListResponse(BaseModel):
    samples: List[NarratorSampleResponse]


class GenerateRequest(BaseModel):
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD; defaults to today")
    narrator_id: Optional[int] = None


class NarratorGenerateRequest(BaseModel):
    date: Optional[str] = None


class ClipResultResponse(BaseModel):
    habitId: int
    habitType: str
    status: str
    audioPath: Optional[str] = None
    script: Optional[str] = None
    message: Optional[str] = None


class GenerationSummaryResponse(BaseModel):
    total: int
    ready: int
    failed: int


class GenerationResponse(BaseModel):
    date: date
    narrator: NarratorResponse
    summary: GenerationSummaryResponse
    clips: List[ClipResultResponse]


class ClipResponse(BaseModel):
    id: int
    habit_id: int
    habit_type: str
    scheduled_date: date
    narrator_id: int
    script: str
    audio_path: str
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    event: Optional[str] = None


class ClipListResponse(BaseModel):
    date: date
    clips: List[ClipResponse]
