"""Prompt assembly for the support agent.

Everything here is pure string building: the fixed instruction and FAQ
blocks, the truncated conversation history, and the final prompt handed to
the model.
"""

from __future__ import annotations

from collections.abc import Sequence

from support_chat.domain.models import ConversationTurn

DEFAULT_MAX_HISTORY_MESSAGES = 10

START_OF_CONVERSATION = "This is the start of the conversation."

_ROLE_LABELS = {"user": "Customer", "assistant": "Agent"}

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a helpful and professional e-commerce customer support agent.

## Your role
- Assist customers with questions about products, orders, shipping, and returns
- Provide accurate information based on our company policies
- Be friendly, concise, and professional
- If you don't know something, admit it and offer to connect them with a human agent

## Guidelines
- Keep responses concise (2-3 sentences when possible)
- Use the FAQ knowledge provided below when applicable
- Be empathetic and understanding
- Never make up information you're not sure about
- If a question is outside your knowledge, say "I'd be happy to connect you \
with a human agent who can help with that."

IMPORTANT: Only provide information based on the FAQ knowledge below. Do not \
invent policies or make promises."""

# ---------------------------------------------------------------------------
# FAQ knowledge
# ---------------------------------------------------------------------------

FAQ_KNOWLEDGE = """\
=== SHIPPING INFORMATION ===

Standard Shipping:
- Delivery time: 5-7 business days
- Cost: $5.99 (Free on orders over $50)
- Tracking: Provided via email once shipped

Express Shipping:
- Delivery time: 2-3 business days
- Cost: $14.99 (Free on orders over $100)

Overnight Shipping:
- Delivery time: 1 business day
- Cost: $24.99
- Orders must be placed before 2 PM EST; domestic orders only

International Shipping:
- Delivery time: 10-15 business days
- Cost: Calculated at checkout based on destination
- Customs fees may apply (customer's responsibility)

=== RETURNS & REFUNDS ===

Return Policy:
- 30-day return window from delivery date
- Items must be unused and in original packaging
- Return shipping: Customer responsibility ($7.99 prepaid label available)
- Refund processing: 5-7 business days after receiving return

Non-Returnable Items:
- Final sale items
- Personalized/custom products
- Opened software or digital products

Exchanges:
- No direct exchanges; return the original item and place a new order

=== BUSINESS HOURS ===

Customer Support Hours:
- Monday-Friday: 9 AM - 8 PM EST
- Saturday: 10 AM - 6 PM EST
- Sunday: 12 PM - 5 PM EST
- Closed on major US holidays

Response Times:
- Email: Within 24 hours on business days
- Live Chat: Within 5 minutes during business hours

=== CONTACT INFORMATION ===

Phone: 1-800-SHOP-NOW (1-800-746-7669)
Email: support@example-store.com
Live Chat: Available on website during business hours"""


def build_system_prompt() -> str:
    """Return the instruction block followed by the FAQ knowledge block."""
    return f"{SYSTEM_PROMPT}\n\n{FAQ_KNOWLEDGE}"


def format_history(
    history: Sequence[ConversationTurn],
    max_messages: int = DEFAULT_MAX_HISTORY_MESSAGES,
) -> str:
    """Render the most recent *max_messages* turns as a readable transcript.

    Older turns are dropped silently.  An empty history (or a zero window)
    renders the start-of-conversation marker instead.
    """
    recent = list(history)[-max_messages:] if max_messages > 0 else []
    if not recent:
        return START_OF_CONVERSATION

    formatted = "\n\n".join(f"{_ROLE_LABELS[turn.role]}: {turn.content}" for turn in recent)
    return f"Previous conversation:\n\n{formatted}"


def build_prompt(
    history: Sequence[ConversationTurn],
    new_message: str,
    max_history_messages: int = DEFAULT_MAX_HISTORY_MESSAGES,
) -> str:
    """Assemble the full prompt sent to the model for one reply."""
    return (
        f"{build_system_prompt()}\n\n"
        f"{format_history(history, max_history_messages)}\n\n"
        f"Customer: {new_message}\n\n"
        "Agent:"
    )
