"""Request/response schemas for courses and their curriculum."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CourseLevel = Literal["beginner", "intermediate", "advanced"]
CourseCategory = Literal["vocabulary", "grammar", "conversation", "reading", "writing", "culture", "kanji"]


# ---------------------------------------------------------------------------
# Curriculum items
# ---------------------------------------------------------------------------


class Attachment(BaseModel):
    """Opaque file reference attached to a resource item."""

    url: str = Field(..., min_length=1)
    name: str = ""
    type: str = ""

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Attachment url is required"
            raise ValueError(msg)
        return v.strip()


class _ItemBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    is_published: bool = True
    is_free_preview: bool = False

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Item title is required"
            raise ValueError(msg)
        return v.strip()


class ResourceItem(_ItemBase):
    type: Literal["resource"] = "resource"
    resource_type: Literal["video", "audio", "pdf", "image", "text", "file"] = "video"
    resource_url: str = ""
    attachments: list[Attachment] = []


class LinkItem(_ItemBase):
    type: Literal["link"] = "link"
    url: str = Field(..., min_length=1)


class AssignmentItem(_ItemBase):
    type: Literal["assignment"] = "assignment"
    instructions: str = ""
    due_date: datetime | None = None
    max_score: int = Field(100, ge=1)


class QuizQuestion(BaseModel):
    question: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0)
    points: int = Field(1, ge=1)

    @model_validator(mode="after")
    def answer_in_options(self) -> QuizQuestion:
        if self.correct_answer >= len(self.options):
            msg = "correct_answer must index one of the options"
            raise ValueError(msg)
        return self


class QuizItem(_ItemBase):
    type: Literal["quiz"] = "quiz"
    questions: list[QuizQuestion] = []
    passing_score: int = Field(70, ge=0, le=100)
    time_limit_minutes: int | None = Field(None, ge=1)


CurriculumItem = Annotated[
    ResourceItem | LinkItem | AssignmentItem | QuizItem,
    Field(discriminator="type"),
]


class Module(BaseModel):
    name: str
    description: str = ""
    items: list[CurriculumItem] = []
    is_published: bool = True
    order: int = 0


class ModuleCreate(BaseModel):
    name: str = ""
    description: str = ""


class PublishToggle(BaseModel):
    is_published: bool


class CurriculumResponse(BaseModel):
    modules: list[Module]


class ModuleAddedResponse(BaseModel):
    module: Module
    curriculum: CurriculumResponse


class ItemAddedResponse(BaseModel):
    item: CurriculumItem
    module_index: int
    item_index: int
    curriculum: CurriculumResponse


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class _CourseFields(BaseModel):
    title_jp: str | None = Field(None, max_length=200)
    description_jp: str | None = None
    tags: list[str] = Field(default_factory=list, max_length=10)
    is_premium: bool = False
    thumbnail_url: str | None = None
    actual_price: float | None = Field(None, ge=0)
    discounted_price: float | None = Field(None, ge=0)
    instructor_notes: str | None = None
    prerequisites: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def discount_not_above_price(self) -> _CourseFields:
        if (
            self.discounted_price is not None
            and self.actual_price is not None
            and self.discounted_price > self.actual_price
        ):
            msg = "discounted_price cannot exceed actual_price"
            raise ValueError(msg)
        return self


class CourseCreate(_CourseFields):
    """Admin payload for a new course. Rating stats are never accepted."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    level: CourseLevel
    category: CourseCategory
    estimated_duration: int = Field(..., ge=5, le=600)
    difficulty: int = Field(..., ge=1, le=10)
    learning_objectives: list[str] = Field(..., min_length=1, max_length=10)
    is_published: bool = False


class CourseUpdate(BaseModel):
    """Partial update. Unknown and derived fields are dropped."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(None, min_length=1, max_length=200)
    title_jp: str | None = Field(None, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=5000)
    description_jp: str | None = None
    level: CourseLevel | None = None
    category: CourseCategory | None = None
    tags: list[str] | None = Field(None, max_length=10)
    estimated_duration: int | None = Field(None, ge=5, le=600)
    difficulty: int | None = Field(None, ge=1, le=10)
    is_premium: bool | None = None
    is_published: bool | None = None
    thumbnail_url: str | None = None
    actual_price: float | None = Field(None, ge=0)
    discounted_price: float | None = Field(None, ge=0)
    instructor_notes: str | None = None
    learning_objectives: list[str] | None = Field(None, min_length=1, max_length=10)
    prerequisites: list[str] | None = None


class CourseSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    title: str
    title_jp: str | None = None
    description: str
    level: str
    category: str
    tags: list[str] = []
    estimated_duration: int
    difficulty: int
    is_premium: bool
    is_published: bool
    thumbnail_url: str | None = None
    actual_price: float | None = None
    discounted_price: float | None = None
    enrolled_students: int = 0
    average_rating: float = 0.0
    total_ratings: int = 0
    created_at: datetime
    updated_at: datetime


class CourseDetail(CourseSummary):
    description_jp: str | None = None
    learning_objectives: list[str] = []
    prerequisites: list[str] = []
    curriculum: dict[str, Any] = {}


class AdminCourseDetail(CourseDetail):
    instructor_notes: str | None = None
    created_by: str


class CourseListResponse(BaseModel):
    courses: list[CourseSummary]
    total: int
