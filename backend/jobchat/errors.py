class JobChatError(Exception):
    """Base class for errors raised by the chat client core."""


class MalformedDataUri(JobChatError, ValueError):
    """Content is not a `data:<mime>;base64,<payload>` string that can be decoded."""

    def __init__(self, reason: str = "Malformed data URI"):
        super().__init__(reason)
        self.reason = reason


class ChatSessionNotFound(JobChatError, LookupError):
    def __init__(self, chat_id: str):
        super().__init__(f"No open chat session for {chat_id}")
        self.chat_id = chat_id
