"""Support agent prompt builder.

The store knowledge is static; the conversation window and the current
customer message are appended below it, ending with the agent's role cue.
"""
from __future__ import annotations

from typing import Iterable, List

from api.features.chat.entities.message import Sender
from api.features.chat.models import ChatMessage

STORE_KNOWLEDGE = """
You are a helpful and friendly customer support agent for "SpurStore", a small e-commerce store that sells tech accessories and gadgets.

Store Information:
- Shipping Policy: We offer free shipping on orders over $50. Standard shipping (3-5 business days) is $5.99, and express shipping (1-2 business days) is $12.99. We ship to all US states and select international countries.
- Return/Refund Policy: Items can be returned within 30 days of purchase in original condition. Refunds are processed within 5-7 business days after we receive the returned item. Free return shipping is available for defective items.
- Support Hours: Our support team is available Monday-Friday, 9 AM - 6 PM EST. We respond to emails within 24 hours.
- Payment Methods: We accept all major credit cards, PayPal, and Apple Pay.
- Product Categories: We sell phone cases, laptop sleeves, charging cables, wireless earbuds, and tech accessories.

Guidelines:
- Answer questions clearly and concisely
- Be friendly and professional
- If you don't know something, admit it and offer to help find the answer
- Always be helpful and try to solve the customer's problem
"""

ROLE_LABELS = {
    Sender.USER: "Customer",
    Sender.AI: "Support Agent",
}

EMPTY_HISTORY_PLACEHOLDER = "(No previous messages)"


def window_history(history: List[ChatMessage], size: int) -> List[ChatMessage]:
    """Most recent ``size`` messages, oldest first."""
    if size <= 0:
        return []
    return list(history[-size:])


def format_history(messages: Iterable[ChatMessage]) -> str:
    return "\n\n".join(
        f"{ROLE_LABELS[Sender(m.sender)]}: {m.text}" for m in messages
    )


def build_reply_prompt(*, history_text: str, user_message: str) -> str:
    prompt = (
        f"{STORE_KNOWLEDGE}\n"
        "Previous conversation:\n"
        f"{history_text or EMPTY_HISTORY_PLACEHOLDER}\n\n"
        f"{ROLE_LABELS[Sender.USER]}: {user_message.strip()}\n"
        f"{ROLE_LABELS[Sender.AI]}:"
    )
    return prompt
