"""
Конфигурация проекта
"""
import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Настройки приложения"""
    # Telegram
    BOT_TOKEN: str = os.getenv('BOT_TOKEN', '')

    # База данных (key/value хранилище)
    DB_PATH: str = os.getenv('DB_PATH', 'data/playbox.db')

    # Бизнес-правила
    DEFAULT_PRICE: int = int(os.getenv('DEFAULT_PRICE', '30000'))
    DEFAULT_UNITS_COUNT: int = 3
    UNIT_NAME_PREFIX: str = 'PlayBox'
    CURRENCY: str = os.getenv('CURRENCY', 'Rp')
    WARNING_THRESHOLD_SECONDS: int = 10 * 60
    UNDO_DELETE_SECONDS: float = 5.0
    NOTICE_LIMIT: int = 6

    # Время жизни уведомлений (секунды)
    NOTICE_LIFE: float = 4.0
    WARNING_NOTICE_LIFE: float = 8.0
    FINISHED_NOTICE_LIFE: float = 10.0
    LOGIN_NOTICE_LIFE: float = 1.6

    # Учётная запись по умолчанию
    DEFAULT_ADMIN_USERNAME: str = os.getenv('DEFAULT_ADMIN_USERNAME', 'admin')
    DEFAULT_ADMIN_PASSWORD: str = os.getenv('DEFAULT_ADMIN_PASSWORD', '1234')
    BCRYPT_ROUNDS: int = int(os.getenv('BCRYPT_ROUNDS', '12'))

    def __post_init__(self):
        """Проверка настроек после создания объекта"""
        if not self.BOT_TOKEN:
            raise ValueError("BOT_TOKEN не установлен")

        if self.DEFAULT_PRICE <= 0:
            raise ValueError("DEFAULT_PRICE должен быть положительным")


# Глобальный экземпляр настроек
settings = Settings()
