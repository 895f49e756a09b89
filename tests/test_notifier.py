import asyncio
from types import SimpleNamespace

from engine.notifications import SignalKind
from handlers.view_handlers import format_customer_view, format_progress
from utils.notifier import TelegramNotifier


class FakeBot:
    def __init__(self):
        self.sent = []
        self.deleted = []
        self._next_id = 0

    async def send_message(self, chat_id, text, **kwargs):
        self._next_id += 1
        self.sent.append((chat_id, text, kwargs))
        return SimpleNamespace(message_id=self._next_id)

    async def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


def test_notice_is_sent_to_operators_and_removed(engine):
    engine.login(100, "admin", "1234")
    engine.create_user("kasir", "pass")
    engine.login(200, "kasir", "pass")
    bot = FakeBot()

    async def scenario():
        TelegramNotifier(bot, engine).attach()
        notice = engine.notifications.enqueue("PlayBox 1 — время вышло!")
        await settle()
        engine.notifications.dismiss(notice.id)
        await settle()

    asyncio.run(scenario())

    assert sorted(chat_id for chat_id, _, _ in bot.sent) == [100, 200]
    assert all(text.endswith("PlayBox 1 — время вышло!") for _, text, _ in bot.sent)
    assert sorted(bot.deleted) == [(100, 1), (200, 2)]


def test_notice_dismissed_before_delivery_is_removed(engine):
    engine.login(100, "admin", "1234")
    bot = FakeBot()

    async def scenario():
        TelegramNotifier(bot, engine).attach()
        notice = engine.notifications.enqueue("Текст")
        engine.notifications.dismiss(notice.id)
        await settle()

    asyncio.run(scenario())

    assert len(bot.sent) == 1
    assert bot.deleted == [(100, 1)]


def test_action_notice_has_button(engine):
    engine.login(100, "admin", "1234")
    bot = FakeBot()

    async def scenario():
        TelegramNotifier(bot, engine).attach()
        engine.request_delete(1)
        await settle()

    asyncio.run(scenario())

    markup = bot.sent[0][2]['reply_markup']
    button = markup.inline_keyboard[0][0]
    assert button.callback_data.startswith("notice:t")


def test_repeated_signals_ring(engine):
    engine.login(100, "admin", "1234")
    bot = FakeBot()

    async def scenario():
        notifier = TelegramNotifier(bot, engine)
        notifier.signal(SignalKind.CLICK, 1.0, 1)
        notifier.signal(SignalKind.WARNING, 0.0, 3)
        notifier.signal(SignalKind.FINISHED, 1.0, 6)
        await settle()

    asyncio.run(scenario())

    assert [text for _, text, _ in bot.sent] == ["⏰ " + "🔔" * 6]


def test_customer_view_text(engine):
    engine.start(1, 0, 10)

    text = format_customer_view(engine.customer_view(1))

    assert "PlayBox 1" in text
    assert "10:00" in text
    assert "Идёт игра" in text
    assert format_progress(0.5) == "▓▓▓▓▓░░░░░"
