from datetime import datetime, timedelta, timezone

import pytest

from jobchat.schemas.chat import Chat
from jobchat.services.inbox import (
    ChatInbox,
    chat_info,
    display_name,
    filter_chats,
    parse_chats,
    preview,
    summarize,
    unread_badge,
    unread_notification_count,
)

RAW_CHAT = {
    "id": 7,
    "application": {
        "candidate": {"user": {"firstName": "Grace", "lastName": "Hopper", "profileImage": "aGVsbG8="}},
        "job": {"employer": {"companyName": "Compiler Co", "profileImage": "https://cdn.test/logo.png"}},
    },
    "lastMessage": {"content": "Thanks, see you at the interview tomorrow!"},
    "lastMessageAt": "2026-10-18T14:05:00Z",
    "unreadCount": 150,
}


def test_chat_resolves_participants_from_application():
    chat = Chat.model_validate(RAW_CHAT)
    assert chat.id == "7"
    assert chat.employer.company_name == "Compiler Co"
    assert chat.candidate.user.first_name == "Grace"


def test_candidate_sees_employer_and_employer_sees_candidate():
    chat = Chat.model_validate(RAW_CHAT)

    as_candidate = chat_info(chat, "CANDIDATE")
    assert as_candidate.display_name == "Compiler Co"
    assert as_candidate.avatar_image == "https://cdn.test/logo.png"

    as_employer = chat_info(chat, "EMPLOYER")
    assert as_employer.display_name == "Grace Hopper"
    assert as_employer.avatar_letter == "G"
    assert as_employer.avatar_image == "data:image/png;base64,aGVsbG8="


def test_display_name_fallbacks():
    assert display_name(None) == "Chat"
    chat = Chat.model_validate({"id": "1", "otherParticipant": {"firstName": "Solo"}})
    assert chat_info(chat, "CANDIDATE").display_name == "Solo"
    assert chat_info(Chat.model_validate({"id": "2"}), "CANDIDATE").avatar_letter == "C"


def test_preview_truncates_long_text():
    assert preview("short") == "short"
    assert preview("x" * 28) == "x" * 28
    assert preview("x" * 29) == "x" * 25 + "..."


@pytest.mark.parametrize("count,badge", [(0, None), (-1, None), (5, "5"), (99, "99"), (100, "99+")])
def test_unread_badge(count, badge):
    assert unread_badge(count) == badge


def test_summarize():
    tz = timezone(timedelta(hours=-5))
    now = datetime(2026, 10, 18, 12, 0, tzinfo=tz)

    summary = summarize(Chat.model_validate(RAW_CHAT), "CANDIDATE", now)

    assert summary.chat_id == "7"
    assert summary.preview == "Thanks, see you at the in..."
    assert summary.unread_badge == "99+"
    assert summary.timestamp_label != ""


def test_filter_chats_is_case_insensitive():
    chats = [
        Chat.model_validate({"id": "1", "employer": {"companyName": "Acme"}}),
        Chat.model_validate({"id": "2", "employer": {"companyName": "Globex"}}),
    ]
    summaries = [summarize(c, "CANDIDATE") for c in chats]

    assert [s.chat_id for s in filter_chats(summaries, "  gLoB ")] == ["2"]
    assert len(filter_chats(summaries, "")) == 2


def test_parse_chats_skips_invalid_entries():
    chats = parse_chats({"chats": [RAW_CHAT, {"noId": True}, "junk"]})
    assert [c.id for c in chats] == ["7"]
    assert parse_chats(None) == []


@pytest.mark.anyio
async def test_inbox_refresh(api, portal):
    portal.chats["7"] = RAW_CHAT
    inbox = ChatInbox(api, "CANDIDATE")

    assert await inbox.refresh()

    assert [s.display_name for s in inbox.summaries()] == ["Compiler Co"]
    [request] = portal.requests_to("GET", "/api/chats")
    assert request["params"] == {"limit": "50"}
    assert inbox.error is None


@pytest.mark.anyio
async def test_unread_count_prefers_server_total(api, portal):
    portal.notifications = [{"id": "n1", "isRead": False}]
    portal.unread_count = 250
    assert await unread_notification_count(api) == 99


@pytest.mark.anyio
async def test_unread_count_counts_unread_items(api, portal):
    portal.notifications = [{"id": "n1", "isRead": False}, {"id": "n2", "isRead": True}, {"id": "n3"}]
    assert await unread_notification_count(api) == 2
