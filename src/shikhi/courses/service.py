"""Course catalogue business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from shikhi.courses.slug import slugify
from shikhi.db.models import Course, utcnow
from shikhi.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from shikhi.courses.schemas import CourseCreate, CourseUpdate

logger = structlog.get_logger()

# Columns a partial update may omit but never clear.
_NOT_NULL = frozenset({
    "title", "description", "level", "category", "estimated_duration", "difficulty",
    "tags", "learning_objectives", "prerequisites", "is_premium", "is_published",
})


def course_price(course: Course) -> float:
    """What a student pays today: the discounted price if set, else the list price."""
    if course.discounted_price:
        return float(course.discounted_price)
    if course.actual_price:
        return float(course.actual_price)
    return 0.0


async def get_course(db: AsyncSession, course_id: str, *, include_unpublished: bool = False) -> Course:
    """
    Load a course by id.

    Unpublished courses are reported as missing unless ``include_unpublished``.

    Raises:
        NotFoundError: No such (visible) course.
    """
    course = await db.get(Course, course_id)
    if course is None or (not include_unpublished and not course.is_published):
        raise NotFoundError("Course not found", course_id=course_id)
    return course


async def get_course_by_slug(db: AsyncSession, slug: str, *, include_unpublished: bool = False) -> Course:
    result = await db.execute(select(Course).where(Course.slug == slug))
    course = result.scalar_one_or_none()
    if course is None or (not include_unpublished and not course.is_published):
        raise NotFoundError("Course not found", slug=slug)
    return course


async def list_courses(
    db: AsyncSession,
    *,
    published_only: bool = True,
    level: str | None = None,
    category: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Course], int]:
    """Courses newest first, with the total matching count."""
    filters = []
    if published_only:
        filters.append(Course.is_published.is_(True))
    if level:
        filters.append(Course.level == level)
    if category:
        filters.append(Course.category == category)

    total = (await db.execute(select(func.count()).select_from(Course).where(*filters))).scalar_one()
    result = await db.execute(
        select(Course).where(*filters).order_by(Course.created_at.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def _ensure_slug_free(db: AsyncSession, slug: str, exclude_id: str | None = None) -> None:
    query = select(Course.id).where(Course.slug == slug)
    if exclude_id is not None:
        query = query.where(Course.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError("A course with this title already exists", slug=slug)


def _slug_for(title: str) -> str:
    slug = slugify(title)
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit")
    return slug


async def create_course(db: AsyncSession, data: CourseCreate, created_by: str) -> Course:
    """
    Create a course from an admin payload.

    Raises:
        ConflictError: Another course already derives the same slug.
        ValidationError: The title yields an empty slug.
    """
    slug = _slug_for(data.title)
    await _ensure_slug_free(db, slug)

    course = Course(
        slug=slug,
        created_by=created_by,
        curriculum={"modules": []},
        **data.model_dump(),
    )
    db.add(course)
    await db.flush()
    logger.info("course_created", course_id=course.id, slug=slug, created_by=created_by)
    return course


async def update_course(db: AsyncSession, course_id: str, data: CourseUpdate) -> Course:
    """Apply a partial update. A title change re-derives the slug."""
    course = await get_course(db, course_id, include_unpublished=True)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("title") and changes["title"] != course.title:
        slug = _slug_for(changes["title"])
        await _ensure_slug_free(db, slug, exclude_id=course.id)
        course.slug = slug

    actual = changes.get("actual_price", course.actual_price)
    discounted = changes.get("discounted_price", course.discounted_price)
    if discounted is not None and actual is not None and discounted > actual:
        raise ValidationError("discounted_price cannot exceed actual_price")

    for key, value in changes.items():
        if value is None and key in _NOT_NULL:
            continue
        setattr(course, key, value)
    course.updated_at = utcnow()
    await db.flush()

    logger.info("course_updated", course_id=course.id, fields=sorted(changes))
    return course


async def set_published(db: AsyncSession, course_id: str, is_published: bool) -> Course:
    course = await get_course(db, course_id, include_unpublished=True)
    course.is_published = is_published
    course.updated_at = utcnow()
    await db.flush()
    logger.info("course_publication_changed", course_id=course.id, is_published=is_published)
    return course


async def delete_course(db: AsyncSession, course_id: str) -> None:
    course = await get_course(db, course_id, include_unpublished=True)
    await db.delete(course)
    await db.flush()
    logger.info("course_deleted", course_id=course_id)
