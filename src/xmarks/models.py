"""Pydantic models for source payloads, stored records, and state updates."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from xmarks.statuses import ClassificationStatus, SyncStatus

# -- Source payloads (bird CLI JSON) -------------------------------------------


class SourceModel(BaseModel):
    # Unknown keys are kept so raw_json round-trips what the tool emitted
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="allow")


class SourceAuthor(SourceModel):
    username: str = ""
    name: str = ""


class SourceMedia(SourceModel):
    type: str | None = None
    url: str = ""
    width: int | None = None
    height: int | None = None
    preview_url: str | None = Field(default=None, alias="previewUrl")
    video_url: str | None = Field(default=None, alias="videoUrl")


class SourcePost(SourceModel):
    id: str
    text: str | None = ""
    author_id: str | None = Field(default="", alias="authorId")
    author: SourceAuthor | None = None
    conversation_id: str | None = Field(default=None, alias="conversationId")
    created_at: str | None = Field(default=None, alias="createdAt")
    like_count: int | None = Field(default=0, alias="likeCount")
    reply_count: int | None = Field(default=0, alias="replyCount")
    retweet_count: int | None = Field(default=0, alias="retweetCount")
    in_reply_to_status_id: str | None = Field(default=None, alias="inReplyToStatusId")
    media: list[SourceMedia] | None = None
    quoted_tweet: SourcePost | None = Field(default=None, alias="quotedTweet")

    @property
    def handle(self) -> str:
        return self.author.username if self.author else ""


class BookmarksPage(SourceModel):
    posts: list[SourcePost] = Field(alias="tweets")
    next_cursor: str | None = Field(default=None, alias="nextCursor")


# -- Stored records ------------------------------------------------------------


class RecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PostRecord(RecordModel):
    id: str
    text: str = ""
    author_id: str = ""
    author_name: str = ""
    author_handle: str = ""
    author_avatar_url: str | None = None
    created_at: str = ""
    bookmarked_at: str | None = None
    fetched_at: str = ""
    reply_count: int = 0
    retweet_count: int = 0
    like_count: int = 0
    in_reply_to_id: str | None = None
    conversation_id: str | None = None
    is_thread: bool = False
    media_json: str = "[]"
    quoted_post_id: str | None = None
    url: str = ""
    category_id: int | None = None
    classified_at: str | None = None


class CategoryRecord(RecordModel):
    id: int
    name: str
    description: str | None = None
    emoji: str | None = None
    created_at: str


class CategoryWithCount(CategoryRecord):
    post_count: int = 0


class ClassificationStateRecord(RecordModel):
    status: ClassificationStatus = ClassificationStatus.IDLE
    phase: str | None = None
    progress_current: int = 0
    progress_total: int = 0
    error_message: str | None = None
    started_at: str | None = None
    completed_at: str | None = None


class ClassificationStateUpdate(BaseModel):
    """Partial update: only explicitly passed fields are written.

    Passing ``phase=None`` clears the column; omitting ``phase`` leaves it alone.
    """

    model_config = ConfigDict(extra="forbid")

    status: ClassificationStatus | None = None
    phase: str | None = None
    progress_current: int | None = None
    progress_total: int | None = None
    error_message: str | None = None
    started_at: str | None = None
    completed_at: str | None = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)


class SyncStateRecord(RecordModel):
    last_sync_at: str | None = None
    last_cursor: str | None = None
    total_synced: int = 0
    status: SyncStatus = SyncStatus.IDLE
    error_message: str | None = None


class SyncResult(BaseModel):
    synced: int
    last_sync_at: str
