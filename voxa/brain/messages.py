"""
Chat message representation for parser requests.

The chat-completions endpoint takes a messages[] list directly; the helpers
here keep message construction in one place.

Usage:
    from voxa.brain.messages import MessageBuilder

    messages = (MessageBuilder()
                .system("You turn speech into tool calls...")
                .user("Open a note")
                .build())
"""
from typing import List, Literal, TypedDict


Role = Literal["system", "user"]


class Message(TypedDict):
    """
    A single chat message.

    Attributes:
        role: "system" or "user"
        content: The text content of the message
    """
    role: Role
    content: str


def msg_system(content: str) -> Message:
    """System message: instructions, tool catalogue, response contract."""
    return {"role": "system", "content": content}


def msg_user(content: str) -> Message:
    """User message: the directive plus its context."""
    return {"role": "user", "content": content}


class MessageBuilder:
    """
    Builds message lists incrementally. Empty content is skipped.

    Example:
        builder = MessageBuilder()
        builder.system("Rules...")
        builder.user("Close the newest window")
        messages = builder.build()
    """

    def __init__(self):
        self._messages: List[Message] = []

    def system(self, content: str) -> "MessageBuilder":
        if content and content.strip():
            self._messages.append(msg_system(content))
        return self

    def user(self, content: str) -> "MessageBuilder":
        if content and content.strip():
            self._messages.append(msg_user(content))
        return self

    def build(self) -> List[Message]:
        """Return a copy of the constructed message list."""
        return self._messages.copy()

    def __len__(self) -> int:
        return len(self._messages)
