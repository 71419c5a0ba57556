"""
Sync request/response schemas.

The request envelope is validated up front; each operation's payload is then
validated on its own against the stream's tagged union so one bad operation
is reported in `errors` instead of rejecting the whole batch.
"""
from pydantic import AliasChoices, Field, TypeAdapter, field_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import date as date_type, datetime

from app.models.enums import SyncOperationKind, SyncType, ReviewRating, ReviewDirection, VocabularyLevel
from app.schemas.utils import CamelModel, normalize_part_of_speech, normalize_gender


# ---------------------------------------------------------------------------
# Request envelope
# ---------------------------------------------------------------------------


class SyncOperationEnvelope(CamelModel):
    """One pending client mutation as it arrives on the wire."""
    id: str = Field(..., min_length=1, max_length=64, description="Client-generated unique operation id")
    operation: SyncOperationKind = Field(..., description="'create', 'update' or 'delete'")
    data: Dict[str, Any] = Field(default_factory=dict, description="Record payload")
    entity_type: Optional[str] = Field(None, description="Entity type hint sent by older clients")
    local_version: Optional[int] = Field(None, ge=0, description="Version the client last saw")
    timestamp: Optional[str] = Field(None, description="Client time the mutation was made")


class SyncRequest(CamelModel):
    """Request body shared by every sync endpoint."""
    last_sync_time: Optional[datetime] = Field(None, description="Client checkpoint; omit for a full sync")
    operations: List[SyncOperationEnvelope] = Field(..., description="Pending operations, oldest first")
    cursor: Optional[str] = Field(None, description="nextCursor from the previous page")
    device_id: Optional[str] = Field(None, max_length=64)
    device_name: Optional[str] = Field(None, max_length=200)
    sync_type: SyncType = Field(SyncType.INCREMENTAL)

    model_config = {
        "json_schema_extra": {
            "example": {
                "lastSyncTime": "2024-01-01T10:00:00.000000Z",
                "operations": [
                    {
                        "id": "8f14e45f-ceea-467a-9b1e-3c1d5a2b9f10",
                        "operation": "create",
                        "data": {
                            "vocabularyId": "vocab-123",
                            "rating": "good",
                            "mode": "recognition",
                            "direction": "spanish-to-english",
                            "timeSpent": 4200,
                            "reviewedAt": "2024-01-01T09:59:00Z"
                        }
                    }
                ]
            }
        }
    }


# ---------------------------------------------------------------------------
# Reviews: create only
# ---------------------------------------------------------------------------


class ReviewPayload(CamelModel):
    """A single review attempt recorded on the client."""
    vocabulary_id: str = Field(..., min_length=1)
    rating: ReviewRating
    mode: Literal["recognition", "recall", "listening"] = "recognition"
    direction: ReviewDirection = ReviewDirection.SPANISH_TO_ENGLISH
    time_spent: int = Field(0, ge=0)
    reviewed_at: Optional[datetime] = None
    difficulty_multiplier: float = Field(1.0, gt=0)


class ReviewCreateOperation(CamelModel):
    id: str
    operation: Literal["create"]
    data: ReviewPayload


# ---------------------------------------------------------------------------
# Daily stats: create and update are both upserts keyed by date
# ---------------------------------------------------------------------------


class DailyStatsPayload(CamelModel):
    """Aggregate activity for one calendar day, as computed by the client."""
    date: date_type
    new_words_added: int = Field(0, ge=0)
    cards_reviewed: int = Field(0, ge=0)
    sessions_completed: int = Field(0, ge=0)
    accuracy_rate: float = Field(0.0, ge=0.0, le=1.0)
    time_spent: int = Field(0, ge=0)


class StatsCreateOperation(CamelModel):
    id: str
    operation: Literal["create"]
    data: DailyStatsPayload


class StatsUpdateOperation(CamelModel):
    id: str
    operation: Literal["update"]
    data: DailyStatsPayload


StatsOperation = Annotated[
    Union[StatsCreateOperation, StatsUpdateOperation],
    Field(discriminator="operation"),
]


# ---------------------------------------------------------------------------
# Vocabulary: create, update, delete
# ---------------------------------------------------------------------------


class VocabularyPayload(CamelModel):
    """Vocabulary fields a client may send. Unset fields are left untouched on update."""
    id: str = Field(..., min_length=1, max_length=64)
    spanish: Optional[str] = Field(None, validation_alias=AliasChoices("spanish", "spanishWord"))
    english: Optional[str] = Field(None, validation_alias=AliasChoices("english", "englishTranslation"))
    part_of_speech: Optional[str] = None
    gender: Optional[str] = None
    level: Optional[VocabularyLevel] = None
    notes: Optional[str] = None
    examples: Optional[List[Dict[str, Any]]] = None
    status: Optional[Literal["new", "learning", "mastered"]] = None
    ease_factor: Optional[float] = Field(None, ge=1.3)
    interval: Optional[int] = Field(None, ge=0)
    repetitions: Optional[int] = Field(None, ge=0)
    last_review_date: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    is_deleted: Optional[bool] = None
    version: Optional[int] = Field(None, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('spanish', 'english')
    @classmethod
    def validate_term(cls, v):
        """Terms, when sent, cannot be blank."""
        if v is None:
            return v
        if not v.strip():
            raise ValueError("term cannot be empty")
        return v.strip()

    @field_validator('part_of_speech', mode='before')
    @classmethod
    def validate_part_of_speech(cls, v):
        return normalize_part_of_speech(v)

    @field_validator('gender', mode='before')
    @classmethod
    def validate_gender(cls, v):
        return normalize_gender(v)


class VocabularyDeletePayload(CamelModel):
    id: str = Field(..., min_length=1, max_length=64)


class VocabularyCreateOperation(CamelModel):
    id: str
    operation: Literal["create"]
    data: VocabularyPayload
    local_version: Optional[int] = None


class VocabularyUpdateOperation(CamelModel):
    id: str
    operation: Literal["update"]
    data: VocabularyPayload
    local_version: Optional[int] = None


class VocabularyDeleteOperation(CamelModel):
    id: str
    operation: Literal["delete"]
    data: VocabularyDeletePayload
    local_version: Optional[int] = None


VocabularyOperation = Annotated[
    Union[VocabularyCreateOperation, VocabularyUpdateOperation, VocabularyDeleteOperation],
    Field(discriminator="operation"),
]

review_operation_adapter = TypeAdapter(ReviewCreateOperation)
stats_operation_adapter = TypeAdapter(StatsOperation)
vocabulary_operation_adapter = TypeAdapter(VocabularyOperation)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SyncErrorEntry(CamelModel):
    """A per-operation failure; the operation stays queued on the client."""
    operation: str = Field(..., description="Id of the failed operation")
    error: str


class SyncResponseBase(CamelModel):
    success: bool = True
    timestamp: str = Field(..., description="Server clock at processing time; the client's next checkpoint")
    processed: List[str] = Field(default_factory=list, description="Ids applied now or on an earlier attempt")
    processed_count: int = 0
    errors: List[SyncErrorEntry] = Field(default_factory=list)
    has_more: bool = Field(False, description="More changed rows exist beyond this page")
    next_cursor: Optional[str] = Field(None, description="Send back as cursor to fetch the next page")


class ReviewRecord(CamelModel):
    id: str
    vocabulary_id: str
    review_type: str
    direction: str
    rating: str
    quality: int
    time_spent: int
    correct: bool
    difficulty: float
    reviewed_at: str
    last_synced_at: str


class ReviewSyncResponse(SyncResponseBase):
    reviews: List[ReviewRecord] = Field(default_factory=list)


class DailyStatsRecord(CamelModel):
    date: str  # ISO format date string (YYYY-MM-DD)
    new_words_added: int
    cards_reviewed: int
    sessions_completed: int
    accuracy_rate: float
    time_spent: int
    version: int
    last_synced_at: str


class StatsSyncResponse(SyncResponseBase):
    stats: List[DailyStatsRecord] = Field(default_factory=list)


class VocabularyChange(CamelModel):
    id: str
    entity_type: str = "vocabulary"
    operation: str = "update"
    data: Dict[str, Any]
    timestamp: str


class SyncConflictEntry(CamelModel):
    """An operation the server did not apply because the stored row is newer or already exists."""
    id: str
    entity_type: str = "vocabulary"
    entity_id: str
    operation_id: str
    local_data: Dict[str, Any]  # Server copy
    remote_data: Dict[str, Any]  # What the client sent
    local_version: int
    remote_version: int
    local_timestamp: Optional[str] = None
    remote_timestamp: Optional[str] = None
    suggested_resolution: str = "newest"


class VocabularySyncResponse(SyncResponseBase):
    operations: List[VocabularyChange] = Field(default_factory=list)
    conflicts: List[SyncConflictEntry] = Field(default_factory=list)
