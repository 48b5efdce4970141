"""
Telegram notifications for the match event feed.
Sends alerts for: kick-off, betting opportunities, how each opportunity
closed (decision / timeout / recovery), and the full-time summary.
"""
import logging
import time
from typing import Optional

import aiohttp

from actionbet.config import TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID

log = logging.getLogger("actionbet.telegram")


class TelegramNotifier:
    """Async Telegram bot for match feed alerts."""

    def __init__(self, token: str = TELEGRAM_BOT_TOKEN, chat_id: str = TELEGRAM_CHAT_ID):
        self.enabled = bool(token and chat_id)
        self.api_url = f"https://api.telegram.org/bot{token}"
        self.chat_id = chat_id
        self._session: Optional[aiohttp.ClientSession] = None
        self._rate_limit_until = 0.0
        self.sent_count = 0
        if not self.enabled:
            log.warning("Telegram not configured — notifications disabled")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def send(self, text: str, parse_mode: str = "HTML"):
        """Send a message to the configured chat."""
        if not self.enabled:
            return

        now = time.time()
        if now < self._rate_limit_until:
            return

        try:
            session = await self._get_session()
            async with session.post(
                f"{self.api_url}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": parse_mode,
                    "disable_web_page_preview": True,
                },
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                if resp.status == 429:
                    data = await resp.json()
                    wait = data.get("parameters", {}).get("retry_after", 30)
                    self._rate_limit_until = now + wait
                    log.warning("Telegram rate limited, waiting %ds", wait)
                elif resp.status != 200:
                    log.warning("Telegram send failed: %d", resp.status)
                else:
                    self.sent_count += 1
        except Exception as e:
            log.error("Telegram error: %s", e)

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    # ── Formatted messages ────────────────────────────────────────

    async def notify_kick_off(self, home: str, away: str, n_events: int):
        await self.send(
            f"⚽ <b>KICK-OFF: {home} vs {away}</b>\n"
            f"├ Timeline events: {n_events}\n"
            f"└ Time: {time.strftime('%H:%M UTC', time.gmtime())}"
        )

    async def notify_opportunity(self, minute: int, description: str,
                                 choices: list[tuple[str, float]],
                                 duration_ms: float):
        lines = "\n".join(f"├ {text} @{odds:.2f}" for text, odds in choices)
        await self.send(
            f"⚡ <b>ACTION BET {minute}'</b>\n"
            f"├ {description}\n"
            f"{lines}\n"
            f"└ Closes in {duration_ms / 1000:.0f}s"
        )

    async def notify_opportunity_closed(self, reason: str, description: str,
                                        outcome: Optional[str],
                                        was_minimized: bool):
        emoji = {"DECISION": "📝", "TIMEOUT": "⏰", "RECOVERY": "⚠️"}.get(reason, "•")
        state = "minimized" if was_minimized else "visible"
        detail = f"Pick: {outcome}" if outcome is not None else f"No pick ({state} modal)"
        await self.send(
            f"{emoji} <b>BET {reason}</b>\n"
            f"├ {description}\n"
            f"└ {detail}"
        )

    async def notify_full_time(self, summary: dict):
        closed = summary.get("closed", {})
        await self.send(
            f"🏁 <b>FULL TIME: {summary.get('home')} "
            f"{summary.get('home_score', 0)}-{summary.get('away_score', 0)} "
            f"{summary.get('away')}</b>\n"
            f"├ Opportunities: {summary.get('opportunities', 0)}\n"
            f"├ Decided: {closed.get('DECISION', 0)} | "
            f"Expired: {closed.get('TIMEOUT', 0)} | "
            f"Recovered: {closed.get('RECOVERY', 0)}\n"
            f"└ Bets won: {summary.get('bets_won', 0)}/{summary.get('bets_placed', 0)}"
        )
