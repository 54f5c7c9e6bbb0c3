from __future__ import annotations
import os, requests
from typing import Optional

from models.trade_record import TradeRecord
from utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID")
EXPLORER_TX_URL = os.getenv("EXPLORER_TX_URL", "https://etherscan.io/tx/")

def _esc(s: str) -> str:
    # minimal Markdown escaping
    return (s or "").replace("\\", "\\\\").replace("_", "\\_").replace("*", "\\*").replace("`", "\\`").replace("[","\\[").replace("]","\\]")

class TelegramService:
    """
    Operator notifications for trade outcomes. Sending is best-effort: a
    failed post is logged and never interrupts an iteration.
    """

    def __init__(self, token: str | None = None, chat_id: str | None = None,
                 session: Optional[requests.Session] = None) -> None:
        self.token = token or TELEGRAM_TOKEN
        self.chat_id = int(chat_id or TELEGRAM_CHAT_ID) if (chat_id or TELEGRAM_CHAT_ID) else None
        self.http = session or requests.Session()
        if not self.enabled:
            logger.info("TelegramService without TOKEN or CHAT_ID; notifications disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_id)

    def _send(self, text: str) -> bool:
        if not self.enabled:
            return False
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"}
        try:
            self.http.post(f"https://api.telegram.org/bot{self.token}/sendMessage", json=payload, timeout=10).raise_for_status()
            return True
        except requests.RequestException as e:
            logger.error(f"❌ Telegram send failed: {e}")
            return False

    @log_function
    def notify_trade(self, record: TradeRecord) -> bool:
        tx = record.transaction_hash or "N/A"
        msg = (
            f"✅ *{record.action.value}* {_esc(record.amount)} on `{record.pair}`\n"
            f"*Session:* {record.session_id}\n"
            f"*Wallet:* `{record.wallet_address}`\n"
            f"*Tx:* {EXPLORER_TX_URL}{tx}"
        )
        return self._send(msg)

    @log_function
    def notify_error(self, session_id: int, message: str) -> bool:
        return self._send(f"🚨 *ERROR* session {session_id}: {_esc(message)}")
