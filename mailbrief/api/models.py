from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from mailbrief.data.models import TaskExtraction


class QueueSummaryRequest(BaseModel):
    account_id: str = Field(min_length=1)
    email_ids: List[str]


class QueueSummaryResponse(BaseModel):
    summaries: Dict[str, str]
    queued: int


class CachedSummaryResponse(BaseModel):
    summaries: Dict[str, str]


class OllamaSettings(BaseModel):
    ollama_base_url: str = Field(min_length=1)
    ollama_model: Optional[str] = None


class ExtractTasksRequest(BaseModel):
    text: str = Field(min_length=1)


class ExtractTasksResponse(BaseModel):
    tasks: List[TaskExtraction]


class RelatedTermsResponse(BaseModel):
    term: str
    terms: List[str]
