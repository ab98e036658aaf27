"""
Data model definitions package.
"""

from .message import Message, MessageHeaders

__all__ = [
    "Message",
    "MessageHeaders",
]
