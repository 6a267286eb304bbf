from jobchat.schemas.chat import (
    Chat,
    ChatInfo,
    ChatSummary,
    Message,
    MessageType,
    Participant,
    ViewerRole,
)
from jobchat.schemas.attachment import (
    AttachmentSource,
    AttachmentUploadResult,
    PickedAttachment,
    UploadOutcome,
)
from jobchat.schemas.render import (
    DateSeparatorItem,
    MessageItem,
    RenderDescriptor,
    RenderItem,
    RenderVariant,
)
from jobchat.schemas.device import DeviceRegistration, PushStatus, RegistrationStatus
from jobchat.schemas.notification import NavigationKind, NavigationTarget, PushPayload

__all__ = [
    "Chat",
    "ChatInfo",
    "ChatSummary",
    "Message",
    "MessageType",
    "Participant",
    "ViewerRole",
    "AttachmentSource",
    "AttachmentUploadResult",
    "PickedAttachment",
    "UploadOutcome",
    "DateSeparatorItem",
    "MessageItem",
    "RenderDescriptor",
    "RenderItem",
    "RenderVariant",
    "DeviceRegistration",
    "PushStatus",
    "RegistrationStatus",
    "NavigationKind",
    "NavigationTarget",
    "PushPayload",
]
