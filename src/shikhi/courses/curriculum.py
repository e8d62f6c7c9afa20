"""Curriculum editing: modules and their items inside a course document.

The curriculum is stored as one JSON document on the course row. Every
mutation works on a copy and assigns it back so the change is flushed, and
bumps ``Course.updated_at``. There is no version check; the last write wins.

Module ``order`` is assigned from the module count at insert time and is what
readers sort by. A full replace renumbers orders to 0..n-1. Item order is the position inside ``module["items"]``.
"""

from __future__ import annotations

import copy
from typing import Any

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.courses.schemas import CurriculumItem, Module
from shikhi.courses.service import get_course
from shikhi.db.models import Course, utcnow
from shikhi.errors import NotFoundError, ValidationError

logger = structlog.get_logger()

_item_adapter: TypeAdapter[Any] = TypeAdapter(CurriculumItem)
_modules_adapter: TypeAdapter[list[Module]] = TypeAdapter(list[Module])


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def validate_item(payload: dict[str, Any]) -> dict[str, Any]:
    """Validate an item payload against its ``type`` and return the stored shape.

    Raises:
        ValidationError: Unknown type, blank title, blank attachment url, etc.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Item must be an object")
    try:
        item = _item_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e
    return item.model_dump(mode="json")


def _modules(course: Course) -> list[dict[str, Any]]:
    return copy.deepcopy((course.curriculum or {}).get("modules", []))


def _store(course: Course, modules: list[dict[str, Any]]) -> None:
    course.curriculum = {"modules": modules}
    course.updated_at = utcnow()


def _module_at(modules: list[dict[str, Any]], module_index: int) -> dict[str, Any]:
    if module_index < 0 or module_index >= len(modules):
        raise NotFoundError("Module not found", module_index=module_index)
    return modules[module_index]


def sorted_modules(curriculum: dict[str, Any] | None, *, include_unpublished: bool) -> list[dict[str, Any]]:
    """Modules in render order. Non-admin readers never see unpublished parts."""
    modules = copy.deepcopy((curriculum or {}).get("modules", []))
    modules.sort(key=lambda m: m.get("order", 0))
    if include_unpublished:
        return modules
    visible = []
    for module in modules:
        if not module.get("is_published", True):
            continue
        module["items"] = [i for i in module.get("items", []) if i.get("is_published", True)]
        visible.append(module)
    return visible


async def get_curriculum(db: AsyncSession, course_id: str, *, include_unpublished: bool) -> dict[str, Any]:
    course = await get_course(db, course_id, include_unpublished=include_unpublished)
    return {"modules": sorted_modules(course.curriculum, include_unpublished=include_unpublished)}


async def add_module(
    db: AsyncSession,
    course_id: str,
    name: str,
    description: str = "",
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Append a module to a course's curriculum.

    Returns:
        Tuple of (module, curriculum).

    Raises:
        NotFoundError: Course does not exist.
        ValidationError: Name is empty.
    """
    course = await get_course(db, course_id, include_unpublished=True)
    if not name or not name.strip():
        raise ValidationError("Module name is required")

    modules = _modules(course)
    module = {
        "name": name.strip(),
        "description": description or "",
        "items": [],
        "is_published": True,
        "order": len(modules),
    }
    modules.append(module)
    _store(course, modules)
    await db.flush()

    logger.info("module_added", course_id=course.id, order=module["order"])
    return module, course.curriculum


async def add_item(
    db: AsyncSession,
    course_id: str,
    module_index: int,
    payload: dict[str, Any],
) -> tuple[dict[str, Any], int, dict[str, Any]]:
    """
    Append an item to the module at ``module_index`` (list position).

    Returns:
        Tuple of (item, item_index, curriculum).

    Raises:
        NotFoundError: Course or module does not exist.
        ValidationError: The item does not validate for its type.
    """
    course = await get_course(db, course_id, include_unpublished=True)
    modules = _modules(course)
    module = _module_at(modules, module_index)
    item = validate_item(payload)

    items = module.setdefault("items", [])
    items.append(item)
    _store(course, modules)
    await db.flush()

    logger.info("item_added", course_id=course.id, module_index=module_index, type=item["type"])
    return item, len(items) - 1, course.curriculum


async def add_link(
    db: AsyncSession,
    course_id: str,
    module_index: int,
    payload: dict[str, Any],
) -> tuple[dict[str, Any], int, dict[str, Any]]:
    """Like :func:`add_item`, but only accepts ``type == "link"``."""
    payload = {**payload}
    payload.setdefault("type", "link")
    if payload["type"] != "link":
        raise ValidationError("Only link items can be added here")
    return await add_item(db, course_id, module_index, payload)


async def set_module_published(db: AsyncSession, course_id: str, module_index: int, is_published: bool) -> dict[str, Any]:
    course = await get_course(db, course_id, include_unpublished=True)
    modules = _modules(course)
    _module_at(modules, module_index)["is_published"] = is_published
    _store(course, modules)
    await db.flush()
    return course.curriculum


async def set_item_published(
    db: AsyncSession,
    course_id: str,
    module_index: int,
    item_index: int,
    is_published: bool,
) -> dict[str, Any]:
    course = await get_course(db, course_id, include_unpublished=True)
    modules = _modules(course)
    items = _module_at(modules, module_index).get("items", [])
    if item_index < 0 or item_index >= len(items):
        raise NotFoundError("Item not found", module_index=module_index, item_index=item_index)
    items[item_index]["is_published"] = is_published
    _store(course, modules)
    await db.flush()
    return course.curriculum


async def replace_curriculum(db: AsyncSession, course_id: str, modules: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Overwrite the whole curriculum, as the editor's save button does.

    Module orders must be unique. They keep their relative order but are
    renumbered from 0, so a later :func:`add_module` lands after them. Items
    are validated like :func:`add_item`.
    """
    course = await get_course(db, course_id, include_unpublished=True)
    if not isinstance(modules, list):
        raise ValidationError("modules must be a list")
    try:
        parsed = _modules_adapter.validate_python(modules)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e

    for module in parsed:
        if not module.name.strip():
            raise ValidationError("Module name is required")
    orders = [m.order for m in parsed]
    if len(set(orders)) != len(orders):
        raise ValidationError("Module order values must be unique")

    stored = [m.model_dump(mode="json") for m in parsed]
    # stored orders are always 0..n-1 in render order
    for rank, module in enumerate(sorted(stored, key=lambda m: m["order"])):
        module["order"] = rank
    _store(course, stored)
    await db.flush()

    logger.info("curriculum_replaced", course_id=course.id, modules=len(parsed))
    return course.curriculum
