"""
Brain module for Voxa.
Language-model parsing adapter over an OpenAI-compatible chat-completions API.
"""
from voxa.brain.messages import (
    Message,
    msg_system,
    msg_user,
    MessageBuilder
)
from voxa.brain.task_parser import ParseRequest, TaskParser

__all__ = [
    "Message",
    "msg_system",
    "msg_user",
    "MessageBuilder",
    "ParseRequest",
    "TaskParser",
]
