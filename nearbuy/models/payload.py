"""
Valores inmutables que producen los builders de mensajes de WhatsApp.
"""
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageKind(str, Enum):
    TEXT = "text"
    BUTTON = "button"
    LIST = "list"
    LOCATION = "location"
    LOCATION_REQUEST = "location_request"
    IMAGE = "image"
    DOCUMENT = "document"

    @property
    def api_type(self) -> str:
        """Valor del campo `type` en la Cloud API."""
        if self in (MessageKind.BUTTON, MessageKind.LIST, MessageKind.LOCATION_REQUEST):
            return "interactive"
        return self.value


class ButtonOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str

    def to_api(self) -> Dict[str, Any]:
        return {"type": "reply", "reply": {"id": self.id, "title": self.title}}


class ListItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str
    description: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        row = {"id": self.id, "title": self.title}
        if self.description:
            row["description"] = self.description
        return row

    @classmethod
    def of(cls, item: Union["ListItem", Dict[str, Any], Tuple]) -> "ListItem":
        """Acepta ListItem, dict {"id","title","description"} o tupla (id, title[, description])."""
        if isinstance(item, ListItem):
            return item
        if isinstance(item, Mapping):
            return cls(id=str(item["id"]), title=item["title"], description=item.get("description") or None)
        if len(item) == 2:
            item_id, title = item
            return cls(id=str(item_id), title=title)
        if len(item) == 3:
            item_id, title, description = item
            return cls(id=str(item_id), title=title, description=description or None)
        raise ValueError("Los items deben ser tuplas de 2 o 3 elementos: (id, title) o (id, title, description)")


class ListSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    items: Tuple[ListItem, ...] = ()

    def count(self) -> int:
        return len(self.items)

    def take(self, limit: int) -> "ListSection":
        return ListSection(title=self.title, items=self.items[:limit])

    def to_api(self) -> Dict[str, Any]:
        section: Dict[str, Any] = {"rows": [item.to_api() for item in self.items]}
        if self.title:
            section["title"] = self.title
        return section


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


class MessagePayload(BaseModel):
    """
    Mensaje saliente terminado. Nunca se modifica después de build().

    `content` es el cuerpo propio del tipo: {"body", "preview_url"} para
    texto, el objeto `interactive` para botones, listas y solicitud de
    ubicación, y el objeto de ubicación o de medio para el resto.
    """
    model_config = ConfigDict(frozen=True)

    recipient: str
    kind: MessageKind
    content: Mapping[str, Any]
    reply_to_message_id: Optional[str] = None

    @field_validator("content", mode="after")
    @classmethod
    def freeze_content(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        # Copia propia de sólo lectura: ni el builder ni el llamador pueden alterarla
        return _freeze(value)

    def to_api(self) -> Dict[str, Any]:
        """JSON listo para POST /{phone_id}/messages."""
        api_type = self.kind.api_type
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": self.recipient,
            "type": api_type,
            api_type: _thaw(self.content),
        }
        if self.reply_to_message_id:
            payload["context"] = {"message_id": self.reply_to_message_id}
        return payload

    @property
    def is_interactive(self) -> bool:
        return self.kind.api_type == "interactive"

    @property
    def body_text(self) -> Optional[str]:
        if self.kind == MessageKind.TEXT:
            return self.content.get("body")
        if self.is_interactive:
            return self.content.get("body", {}).get("text")
        if self.kind in (MessageKind.IMAGE, MessageKind.DOCUMENT):
            return self.content.get("caption")
        return None

    @property
    def header_text(self) -> Optional[str]:
        return self.content.get("header", {}).get("text") if self.is_interactive else None

    @property
    def footer_text(self) -> Optional[str]:
        return self.content.get("footer", {}).get("text") if self.is_interactive else None

    @property
    def buttons(self) -> List[ButtonOption]:
        if self.kind != MessageKind.BUTTON:
            return []
        return [
            ButtonOption(id=b["reply"]["id"], title=b["reply"]["title"])
            for b in self.content["action"]["buttons"]
        ]

    @property
    def sections(self) -> List[ListSection]:
        if self.kind != MessageKind.LIST:
            return []
        return [
            ListSection(
                title=s.get("title", ""),
                items=tuple(ListItem.of(row) for row in s["rows"]),
            )
            for s in self.content["action"]["sections"]
        ]

    @property
    def item_ids(self) -> List[str]:
        """Ids de todos los items de lista (en orden) o de los botones."""
        if self.kind == MessageKind.BUTTON:
            return [b.id for b in self.buttons]
        return [item.id for section in self.sections for item in section.items]


def as_items(items: Sequence[Union[ListItem, Dict[str, Any], Tuple]]) -> List[ListItem]:
    return [ListItem.of(item) for item in items]
