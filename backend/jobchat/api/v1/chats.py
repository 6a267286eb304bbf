from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from jobchat.api.deps import get_core
from jobchat.core import ClientCore
from jobchat.schemas.attachment import PickedAttachment
from jobchat.schemas.chat import ChatSummary
from jobchat.schemas.render import MessageItem
from jobchat.schemas.session import (
    ChatSessionResponse,
    DocumentResolveRequest,
    DocumentResolveResponse,
    DraftUpdate,
    TimelineResponse,
)
from jobchat.services.attachment_uploader import ALLOWED_DOCUMENT_MIME_TYPES
from jobchat.services.chat_sync import ChatSyncClient, SendFailure, SendResult

router = APIRouter()


def session_response(session: ChatSyncClient) -> ChatSessionResponse:
    return ChatSessionResponse(
        chat_id=session.chat_id,
        state=session.state.value,
        draft=session.draft,
        can_send=session.can_send,
        info=session.info,
        message_count=len(session.messages),
        has_more=session.has_more,
        history_state=session.history_state.value,
        last_error=session.last_error,
        pending_attachment=session.pending_attachment is not None,
    )


def _accepted_or_conflict(result: SendResult) -> SendResult:
    if result.failure == SendFailure.PERMISSION_DENIED:
        raise HTTPException(status_code=403, detail=result.error)
    if not result.accepted:
        raise HTTPException(status_code=409, detail=result.error)
    return result


@router.get("", response_model=list[ChatSummary])
async def list_chats(q: str = "", core: ClientCore = Depends(get_core)):
    """Refresh and return the chat list, optionally filtered by name."""
    await core.inbox.refresh()
    if core.inbox.error and not core.inbox.chats:
        raise HTTPException(status_code=502, detail=core.inbox.error)
    return core.inbox.summaries(q)


@router.get("/attachments/document-types")
async def document_types():
    """MIME types the document picker should offer."""
    return {"mime_types": list(ALLOWED_DOCUMENT_MIME_TYPES)}


@router.post("/{chat_id}/open", response_model=ChatSessionResponse)
async def open_chat(chat_id: str, core: ClientCore = Depends(get_core)):
    """Open a chat thread, loading its details and first page of messages."""
    session = await core.open_session(chat_id)
    return session_response(session)


@router.get("/{chat_id}", response_model=ChatSessionResponse)
async def get_chat(chat_id: str, core: ClientCore = Depends(get_core)):
    return session_response(core.get_session(chat_id))


@router.delete("/{chat_id}")
async def close_chat(chat_id: str, core: ClientCore = Depends(get_core)):
    """Close a chat thread. Results still in flight for it are discarded."""
    return {"closed": core.close_session(chat_id)}


@router.get("/{chat_id}/timeline", response_model=TimelineResponse)
async def chat_timeline(
    chat_id: str,
    now: Optional[datetime] = None,
    core: ClientCore = Depends(get_core),
):
    session = core.get_session(chat_id)
    items = session.timeline(now=now)
    renders = {
        item.key: session.classify(item.message) for item in items if isinstance(item, MessageItem)
    }
    return TimelineResponse(chat_id=chat_id, items=items, renders=renders)


@router.put("/{chat_id}/draft", response_model=ChatSessionResponse)
async def update_draft(chat_id: str, body: DraftUpdate, core: ClientCore = Depends(get_core)):
    session = core.get_session(chat_id)
    session.set_draft(body.text)
    return session_response(session)


@router.post("/{chat_id}/messages", response_model=SendResult)
async def send_draft(chat_id: str, core: ClientCore = Depends(get_core)):
    """Send the current draft as a text message."""
    session = core.get_session(chat_id)
    return _accepted_or_conflict(await session.submit_text())


@router.post("/{chat_id}/attachments", response_model=SendResult)
async def send_attachment(
    chat_id: str,
    picked: PickedAttachment,
    core: ClientCore = Depends(get_core),
):
    """Upload a picked image or document and send it as a message."""
    session = core.get_session(chat_id)
    return _accepted_or_conflict(await session.submit_attachment(picked))


@router.post("/{chat_id}/attachments/retry", response_model=SendResult)
async def retry_attachment(chat_id: str, core: ClientCore = Depends(get_core)):
    session = core.get_session(chat_id)
    return _accepted_or_conflict(await session.retry_attachment())


@router.post("/{chat_id}/load-more", response_model=ChatSessionResponse)
async def load_more(chat_id: str, core: ClientCore = Depends(get_core)):
    session = core.get_session(chat_id)
    await session.load_more()
    return session_response(session)


@router.post("/documents/resolve", response_model=DocumentResolveResponse)
async def resolve_document(body: DocumentResolveRequest, core: ClientCore = Depends(get_core)):
    """Return a URI the OS viewer can open for a FILE message body."""
    uri = await core.documents.resolve(body.content)
    return DocumentResolveResponse(uri=uri)
