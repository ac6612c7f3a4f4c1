"""
Data models for the Well Nice Concierge backend.
"""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Union, Any


class BlockType(Enum):
    TEXT    = "text"
    TABLE   = "table"
    PRODUCT = "product"


class Role(Enum):
    SYSTEM    = "system"
    USER      = "user"
    ASSISTANT = "assistant"


# ─────────────────────────────────────────────
# DISPLAY BLOCKS
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class TextBlock:
    text: str

    type = BlockType.TEXT

    def to_dict(self) -> dict:
        return {"type": self.type.value, "text": self.text}


@dataclass(frozen=True)
class TableBlock:
    title: str
    rows: List[Dict[str, str]] = field(default_factory=list)  # keys are lower-cased headers

    type = BlockType.TABLE

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "title": self.title,
            "rows": [dict(row) for row in self.rows],
        }


@dataclass(frozen=True)
class ProductBlock:
    title: str
    price: str
    description: str
    image: str
    url: str

    type = BlockType.PRODUCT

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "title": self.title,
            "price": self.price,
            "description": self.description,
            "image": self.image,
            "url": self.url,
        }


Block = Union[TextBlock, TableBlock, ProductBlock]


@dataclass
class ProductRecord:
    """A product as returned by a lookup collaborator. Only `name` is guaranteed."""
    name: str
    price: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ProductRecord":
        return cls(
            name=str(raw.get("name") or raw.get("title") or ""),
            price=_optional_str(raw.get("price")),
            description=_optional_str(raw.get("description")),
            image=_optional_str(raw.get("image")),
            url=_optional_str(raw.get("url")),
            category=_optional_str(raw.get("category")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "image": self.image,
            "url": self.url,
            "category": self.category,
        }


# ─────────────────────────────────────────────
# CONVERSATIONS
# ─────────────────────────────────────────────

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=utc_now)

    def for_model(self) -> dict:
        """Role/content pair as chat-completion APIs expect it."""
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Conversation:
    id: str
    history: List[Message]
    created: datetime
    last_updated: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "history": [m.to_dict() for m in self.history],
            "created": self.created.isoformat(),
            "last_updated": self.last_updated.isoformat(),
        }


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)
