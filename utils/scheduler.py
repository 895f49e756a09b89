"""
Планировщик: секундный тик и отложенные действия
"""
import logging
from datetime import datetime
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

TICK_JOB_ID = 'tick'
PURGE_JOB_ID = 'purge_deleted'


async def run_deferred(callback: Callable, *args):
    """
    Обёртка отложенного действия.
    Корутина выполняется в цикле событий, а не в пуле потоков,
    поэтому не пересекается с тиком и обработчиками.
    """
    try:
        callback(*args)
    except Exception as e:
        logger.error(f"Ошибка отложенного действия {callback!r}: {e}", exc_info=True)


class JobDeferrer:
    """Отложенные действия как задачи APScheduler с идентификатором"""

    def __init__(self, scheduler: AsyncIOScheduler):
        self._scheduler = scheduler

    def schedule(self, job_id: str, run_at: datetime, callback: Callable, *args):
        self._scheduler.add_job(
            run_deferred,
            trigger=DateTrigger(run_date=run_at),
            args=[callback, *args],
            id=job_id,
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel(self, job_id: str):
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            # Задача уже выполнилась или была отменена
            pass


async def tick_job(engine):
    """Секундный тик всех консолей"""
    try:
        engine.tick()
    except Exception as e:
        logger.error(f"Ошибка тика: {e}", exc_info=True)


async def purge_deleted_job(engine):
    """Страховочная очистка консолей с истёкшим окном отмены"""
    try:
        removed = engine.purge_expired()
        if removed:
            logger.info(f"Удалено консолей: {len(removed)}")
    except Exception as e:
        logger.error(f"Ошибка при удалении консолей: {e}", exc_info=True)


def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler()


async def start_scheduler(scheduler: AsyncIOScheduler, engine) -> AsyncIOScheduler:
    """Запуск планировщика задач"""
    # Тики не накладываются: следующий не начнётся, пока не закончен текущий
    scheduler.add_job(
        tick_job,
        trigger=IntervalTrigger(seconds=1),
        args=[engine],
        id=TICK_JOB_ID,
        name='Тик таймеров',
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )

    scheduler.add_job(
        purge_deleted_job,
        trigger=IntervalTrigger(minutes=1),
        args=[engine],
        id=PURGE_JOB_ID,
        name='Удаление консолей',
        replace_existing=True
    )

    scheduler.start()
    logger.info("Планировщик задач запущен")

    return scheduler
