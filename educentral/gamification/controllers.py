"""
Learning module controllers.

Published modules and their lessons, per-lesson progress and the XP stats
that completing lessons earns.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from educentral.common.error_handling import NotFoundError
from educentral.common.logger import app_logger
from educentral.gamification import service
from educentral.storage.repository import DatabaseStorage, get_storage
from educentral.storage.schemas import UserProgressCreate

logger = app_logger.getChild("gamification.controllers")

router = APIRouter(prefix="/learning")


@router.get("/modules")
async def list_modules(storage: DatabaseStorage = Depends(get_storage)) -> List[Dict[str, Any]]:
    modules = await storage.get_published_modules()
    return [module.to_dict() for module in modules]


@router.get("/modules/{module_id}")
async def get_module(module_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    module = await storage.get_module_with_lessons(module_id)
    if module is None:
        raise NotFoundError("Module", module_id)
    return module


@router.get("/lessons/{lesson_id}")
async def get_lesson(lesson_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    lesson = await storage.get_lesson(lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson", lesson_id)
    return lesson.to_dict()


@router.get("/stats")
async def get_stats(
    user_id: Optional[int] = None,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    XP, level and streak of a user.

    Without ``user_id`` the demo user is used. A zeroed stats row is created
    the first time a user's stats are read.
    """
    user_id = await service.resolve_user_id(storage, user_id)
    stats = await service.ensure_user_stats(storage, user_id)
    return stats.to_dict()


@router.post("/progress")
async def record_progress(
    progress: UserProgressCreate,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    Record progress on a lesson.

    Completing a lesson awards its XP and advances the user's streak.
    """
    if await storage.get_user(progress.user_id) is None:
        raise NotFoundError("User", progress.user_id)
    if await storage.get_learning_module(progress.module_id) is None:
        raise NotFoundError("Module", progress.module_id)

    lesson = None
    if progress.lesson_id is not None:
        lesson = await storage.get_lesson(progress.lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson", progress.lesson_id)

    created = await storage.create_user_progress(progress)

    if progress.is_completed and lesson is not None and lesson.xp_reward:
        await service.award_xp(storage, progress.user_id, lesson.xp_reward)
        logger.info(f"User {progress.user_id} completed lesson {lesson.id} for {lesson.xp_reward} XP")

    return created.to_dict()


@router.get("/progress/{user_id}/{module_id}")
async def get_module_progress(
    user_id: int,
    module_id: int,
    storage: DatabaseStorage = Depends(get_storage)
) -> List[Dict[str, Any]]:
    progress = await storage.get_user_module_progress(user_id, module_id)
    return [entry.to_dict() for entry in progress]
