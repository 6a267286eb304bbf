import math
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable, Optional

from jobchat.schemas.chat import Message
from jobchat.schemas.render import DateSeparatorItem, MessageItem

# Epoch values above this are milliseconds (year 5138 in seconds).
_EPOCH_MS_THRESHOLD = 1e11


def local_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse a server timestamp into an aware datetime in `tz`, or None."""
    tz = tz or local_tz()
    dt: Optional[datetime] = None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _normalize_now(now: Optional[datetime], tz: tzinfo) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def format_date_label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def format_message_time(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def separator_label(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return format_date_label(day)


def _message_key(message: Message, index: int) -> str:
    return message.id if message.id else f"idx-{index}"


def build_timeline(
    messages: Iterable[Message],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> list[DateSeparatorItem | MessageItem]:
    """Interleave date separators into an already ordered message list.

    A separator is emitted whenever a message falls on a different local
    calendar day than the previous dated message. Messages whose timestamp
    cannot be parsed are kept, without a separator.
    """
    tz = tz or local_tz()
    now = _normalize_now(now, tz)
    today = now.date()

    items: list[DateSeparatorItem | MessageItem] = []
    last_date_key: Optional[date] = None
    for index, message in enumerate(messages):
        dt = parse_timestamp(message.created_at, tz)
        if dt is not None:
            day = dt.date()
            if day != last_date_key:
                last_date_key = day
                items.append(
                    DateSeparatorItem(key=f"date-{day.isoformat()}", label=separator_label(day, today))
                )
        items.append(MessageItem(key=_message_key(message, index), message=message))
    return items


def format_chat_timestamp(value: Any, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    """Short timestamp for the chat list: time today, then weekday, then date."""
    tz = tz or local_tz()
    dt = parse_timestamp(value, tz)
    if dt is None:
        return ""
    now = _normalize_now(now, tz)
    diff_days = math.floor((now - dt).total_seconds() / 86400)
    if diff_days == 0:
        return format_message_time(dt)
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return dt.strftime("%a")
    return dt.strftime("%m/%d/%y")
