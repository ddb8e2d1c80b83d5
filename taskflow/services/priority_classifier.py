"""
Keyword priority classifier for inbound WhatsApp messages.

Urgent keywords win over low-urgency ones; anything else is medium.
Matching is case- and accent-insensitive ("Emergência" == "emergencia").
"""

import unicodedata

from taskflow.db.enums import TaskPriority

URGENT_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "emergency",
    "high-priority",
    "high priority",
    "important",
    # Portuguese
    "urgente",
    "emergencia",
    "prioridade alta",
    "importante",
    "prioritario",
    "rapido",
)

LOW_URGENCY_KEYWORDS: tuple[str, ...] = (
    "when possible",
    "no rush",
    # Portuguese
    "quando possivel",
    "sem pressa",
)


def normalize(content: str) -> str:
    """Lower-case and strip combining accents."""
    decomposed = unicodedata.normalize("NFKD", content.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def classify(content: str) -> TaskPriority:
    """Assign a priority to message content."""
    text = normalize(content)
    if any(keyword in text for keyword in URGENT_KEYWORDS):
        return TaskPriority.HIGH
    if any(keyword in text for keyword in LOW_URGENCY_KEYWORDS):
        return TaskPriority.LOW
    return TaskPriority.MEDIUM
