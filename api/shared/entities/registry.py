"""Entity registry to ensure SQLAlchemy loads all table metadata.

Import all entity modules here so schema creation can discover them.
"""
# Import base first to expose BaseEntity.metadata
from api.shared.entities.base import BaseEntity  # noqa: F401

# Feature: Chat
from api.features.chat.entities.conversation import Conversation  # noqa: F401
from api.features.chat.entities.message import Message  # noqa: F401
