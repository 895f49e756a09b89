"""
Главный файл Telegram-бота учёта аренды игровых консолей
"""
import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from config import settings
from database.database import init_db
from engine.rental import RentalEngine
from handlers import auth_handlers, view_handlers, unit_handlers, log_handlers, admin_handlers
from middlewares.delete_cleanup import PendingDeleteCleanupMiddleware
from utils.notifier import TelegramNotifier
from utils.scheduler import JobDeferrer, create_scheduler, start_scheduler

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Основная функция запуска бота"""
    logger.info("Запуск бота...")

    # Инициализация БД
    init_db()
    logger.info("База данных инициализирована")

    # Движок и отложенные действия через планировщик
    scheduler = create_scheduler()
    engine = RentalEngine(JobDeferrer(scheduler))
    engine.load()

    # Создание бота и диспетчера; engine доступен во всех обработчиках
    bot = Bot(token=settings.BOT_TOKEN)
    storage = MemoryStorage()
    dp = Dispatcher(storage=storage, engine=engine)

    TelegramNotifier(bot, engine).attach()

    # Подключение middleware для удаления консолей
    dp.message.middleware(PendingDeleteCleanupMiddleware())
    dp.callback_query.middleware(PendingDeleteCleanupMiddleware())

    # Регистрация роутеров
    dp.include_router(auth_handlers.router)
    dp.include_router(view_handlers.router)
    dp.include_router(unit_handlers.router)
    dp.include_router(log_handlers.router)
    dp.include_router(admin_handlers.router)

    # Запуск тика таймеров
    await start_scheduler(scheduler, engine)

    try:
        logger.info("Бот успешно запущен")
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        scheduler.shutdown()
        await bot.session.close()
        logger.info("Бот остановлен")


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Бот остановлен пользователем")
    except Exception as e:
        logger.error(f"Критическая ошибка: {e}", exc_info=True)
