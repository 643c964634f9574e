"""
Daily reminder of jobs that were assigned a truck but never confirmed complete.

Independent of the billing core: it only reads operational status. Messages
are HTML-formatted for the Telegram Bot API and split so each stays below
Telegram's 4096 character limit.
"""

import html
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Sequence, Tuple

import requests

from dispatchdesk.core.config import env_int, env_str
from dispatchdesk.models.records import JobRecord, JobStatus
from dispatchdesk.services.money import format_date_long

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 3500
FOOTER = "\n📌 กรุณายืนยันการจบงานในระบบ"


def select_pending_jobs(jobs: Sequence[JobRecord]) -> List[JobRecord]:
    pending = [j for j in jobs if j.status == JobStatus.ASSIGNED]
    pending.sort(key=lambda j: (j.date_of_service is None, j.date_of_service or date.min, j.id))
    return pending


def _job_block(index: int, job: JobRecord) -> str:
    e = html.escape
    route = f"{e(job.origin)} → {e(job.destination)}" if job.origin and job.destination else "-"
    plate = f" ({e(job.license_plate)})" if job.license_plate else ""
    truck = f"{e(job.truck_type)}{plate}" if job.truck_type else "-"
    return "\n".join(
        [
            "",
            f"{index}. 📋 <b>{e(job.id)}</b>",
            f"   📅 {job.date_of_service.isoformat() if job.date_of_service else '-'}",
            f"   🗺 {route}",
            f"   🚛 {truck}",
            f"   👷 {e(job.driver_name or '-')}",
        ]
    )


def build_summary_messages(
    pending: Sequence[JobRecord],
    today: date,
    time_label: str = "18:30",
    max_chars: int = MAX_MESSAGE_CHARS,
) -> List[str]:
    stamp = f"🗓 {format_date_long(today)}  |  เวลา {time_label} น."

    if not pending:
        return [
            "\n".join(
                [
                    "✅ <b>รายงานสรุปประจำวัน</b>",
                    stamp,
                    "",
                    "🎉 ไม่มีงานค้างยืนยันการจบงาน",
                    "ทุกงานเสร็จสมบูรณ์แล้ว!",
                ]
            )
        ]

    messages: List[str] = []
    current = "\n".join(
        [
            "⚠️ <b>รายงานงานค้างยืนยันจบงาน</b>",
            stamp,
            "",
            f"พบงานที่ยังไม่ได้ยืนยันจบงาน <b>{len(pending)} รายการ</b>",
        ]
    )

    for i, job in enumerate(pending, start=1):
        block = _job_block(i, job)
        if len(current + block + FOOTER) > max_chars:
            messages.append(current + FOOTER)
            current = f"⚠️ <b>รายงานงานค้าง (ต่อ {len(messages) + 1})</b>\n"
        current += block

    messages.append(current + FOOTER)
    return messages


class TelegramNotifier:
    """Sends text through the Bot API. Failures are logged; nothing is retried."""

    def __init__(self, token: str, chat_id: str, *, timeout: float = 15.0, session=None):
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout
        self.session = session or requests

    @classmethod
    def from_env(cls) -> "TelegramNotifier":
        return cls(
            env_str("TELEGRAM_BOT_TOKEN", ""),
            env_str("TELEGRAM_CHAT_ID", ""),
            timeout=float(env_int("TELEGRAM_TIMEOUT_SECONDS", 15)),
        )

    @property
    def configured(self) -> bool:
        return bool(self.token and self.chat_id)

    def send(self, text: str) -> bool:
        if not self.configured:
            logger.warning("Telegram not configured; reminder skipped")
            return False

        url = f"https://api.telegram.org/bot{self.token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"}
        try:
            r = self.session.post(url, json=payload, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error(
                "Telegram sendMessage failed",
                extra={"component": "reminder", "error": str(e)},
            )
            return False
        return True


@dataclass(frozen=True)
class ReminderRunResult:
    pending_count: int
    messages: List[str]
    sent: int

    @property
    def failed(self) -> int:
        return len(self.messages) - self.sent


def run_daily_reminder(
    jobs: Sequence[JobRecord],
    notifier: TelegramNotifier,
    today: date,
    time_label: str = "18:30",
) -> ReminderRunResult:
    pending = select_pending_jobs(jobs)
    messages = build_summary_messages(pending, today, time_label)
    sent = sum(1 for msg in messages if notifier.send(msg))

    logger.info(
        "Daily reminder sent",
        extra={"pending_jobs": len(pending), "messages": len(messages), "sent": sent},
    )
    return ReminderRunResult(pending_count=len(pending), messages=messages, sent=sent)


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """'HH:MM' to (hour, minute); anything unparseable falls back to 18:30."""
    try:
        hh, mm = value.strip().split(":", 1)
        h, m = int(hh), int(mm)
    except (AttributeError, ValueError):
        return 18, 30
    if 0 <= h < 24 and 0 <= m < 60:
        return h, m
    return 18, 30
