"""Tests for actionbet.telegram — message formatting and send handling (no network)."""
from unittest.mock import AsyncMock, MagicMock

from actionbet.telegram import TelegramNotifier


def _notifier_with_response(status: int, payload: dict | None = None) -> tuple[TelegramNotifier, MagicMock]:
    notifier = TelegramNotifier(token="123:abc", chat_id="42")
    resp = MagicMock()
    resp.status = status
    resp.json = AsyncMock(return_value=payload or {})
    http = MagicMock()
    http.post.return_value.__aenter__.return_value = resp
    notifier._get_session = AsyncMock(return_value=http)
    return notifier, http


class TestConfiguration:
    def test_disabled_without_credentials(self) -> None:
        assert TelegramNotifier(token="", chat_id="42").enabled is False
        assert TelegramNotifier(token="123:abc", chat_id="").enabled is False

    def test_enabled_with_credentials(self) -> None:
        notifier = TelegramNotifier(token="123:abc", chat_id="42")
        assert notifier.enabled is True
        assert notifier.api_url == "https://api.telegram.org/bot123:abc"

    async def test_disabled_send_is_noop(self) -> None:
        notifier = TelegramNotifier(token="", chat_id="")
        notifier._get_session = AsyncMock()
        await notifier.send("hello")
        notifier._get_session.assert_not_awaited()


class TestSend:
    async def test_successful_send(self) -> None:
        notifier, http = _notifier_with_response(200)
        await notifier.send("hello")

        assert notifier.sent_count == 1
        url = http.post.call_args.args[0]
        body = http.post.call_args.kwargs["json"]
        assert url.endswith("/sendMessage")
        assert body["chat_id"] == "42"
        assert body["text"] == "hello"
        assert body["parse_mode"] == "HTML"

    async def test_rate_limit_suppresses_following_sends(self) -> None:
        notifier, http = _notifier_with_response(429, {"parameters": {"retry_after": 60}})
        await notifier.send("first")
        await notifier.send("second")

        assert http.post.call_count == 1
        assert notifier.sent_count == 0
        assert notifier._rate_limit_until > 0

    async def test_server_error_is_not_counted(self) -> None:
        notifier, _ = _notifier_with_response(500)
        await notifier.send("hello")
        assert notifier.sent_count == 0

    async def test_transport_error_is_logged_not_raised(self) -> None:
        notifier = TelegramNotifier(token="123:abc", chat_id="42")
        notifier._get_session = AsyncMock(side_effect=OSError("network down"))
        await notifier.send("hello")
        assert notifier.sent_count == 0


class TestMessages:
    async def test_opportunity_message(self) -> None:
        notifier = TelegramNotifier(token="123:abc", chat_id="42")
        notifier.send = AsyncMock()
        await notifier.notify_opportunity(
            23, "Crunching tackle!", [("Yellow Card", 2.5), ("Red Card", 8.0)], 10_000)

        text = notifier.send.await_args.args[0]
        assert "ACTION BET 23'" in text
        assert "Yellow Card @2.50" in text
        assert "Red Card @8.00" in text
        assert "Closes in 10s" in text

    async def test_closed_message_without_pick(self) -> None:
        notifier = TelegramNotifier(token="123:abc", chat_id="42")
        notifier.send = AsyncMock()
        await notifier.notify_opportunity_closed("TIMEOUT", "Crunching tackle!", None, True)

        text = notifier.send.await_args.args[0]
        assert "BET TIMEOUT" in text
        assert "No pick (minimized modal)" in text

    async def test_full_time_message(self) -> None:
        notifier = TelegramNotifier(token="123:abc", chat_id="42")
        notifier.send = AsyncMock()
        await notifier.notify_full_time({
            "home": "Reds", "away": "Blues", "home_score": 2, "away_score": 1,
            "opportunities": 4, "closed": {"DECISION": 3, "TIMEOUT": 1, "RECOVERY": 0},
            "bets_placed": 3, "bets_won": 2,
        })

        text = notifier.send.await_args.args[0]
        assert "FULL TIME: Reds 2-1 Blues" in text
        assert "Decided: 3 | Expired: 1 | Recovered: 0" in text
        assert "Bets won: 2/3" in text
