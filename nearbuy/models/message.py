from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional

class InteractiveButtonReply(BaseModel):
    id: str
    title: str

class InteractiveListReply(BaseModel):
    id: str
    title: str
    description: Optional[str] = None

class Interactive(BaseModel):
    type: str  # "button_reply" o "list_reply"
    button_reply: Optional[InteractiveButtonReply] = None
    list_reply: Optional[InteractiveListReply] = None

class LocationContent(BaseModel):
    latitude: float
    longitude: float
    name: Optional[str] = None
    address: Optional[str] = None

class MediaContent(BaseModel):
    id: Optional[str] = None
    mime_type: Optional[str] = None
    sha256: Optional[str] = None
    caption: Optional[str] = None
    filename: Optional[str] = None

class TemplateButton(BaseModel):
    payload: Optional[str] = None
    text: Optional[str] = None

class Message(BaseModel):
    from_: str = Field(alias="from")      # "from" es palabra reservada
    id: str
    timestamp: str
    type: str
    text: Optional[Dict[str, Any]] = None    # para mensajes de texto
    interactive: Optional[Interactive] = None  # para mensajes interactivos
    location: Optional[LocationContent] = None
    image: Optional[MediaContent] = None
    document: Optional[MediaContent] = None
    button: Optional[TemplateButton] = None   # respuesta a botón de plantilla
    context: Optional[Dict[str, Any]] = None

class Contact(BaseModel):
    wa_id: Optional[str] = None
    profile: Optional[Dict[str, Any]] = None

class Status(BaseModel):
    id: str
    status: str
    timestamp: str
    recipient_id: Optional[str] = None

class Value(BaseModel):
    messages: List[Message] = Field(default_factory=list)
    contacts: List[Contact] = Field(default_factory=list)
    statuses: List[Status] = Field(default_factory=list)  # Para estados de mensajes

class Change(BaseModel):
    value: Value

class WhatsAppEntry(BaseModel):
    changes: List[Change]

class WebhookPayload(BaseModel):
    entry: List[WhatsAppEntry] = Field(default_factory=list)


class IncomingMessage(BaseModel):
    """
    Vista uniforme de un mensaje entrante, sin importar su tipo.
    Es lo que consumen el router y los flujos.
    """
    message_id: str
    phone: str
    type: str
    text: Optional[str] = None
    selection_id: Optional[str] = None       # id del botón o del item de lista
    selection_title: Optional[str] = None
    location: Optional[LocationContent] = None
    media_id: Optional[str] = None
    caption: Optional[str] = None
    profile_name: Optional[str] = None

    @property
    def is_selection(self) -> bool:
        return self.selection_id is not None

    @property
    def is_location(self) -> bool:
        return self.location is not None

    @property
    def keyword(self) -> str:
        """Texto normalizado para comparar con palabras clave."""
        return (self.text or "").strip().lower()

    @classmethod
    def from_webhook(cls, message: Message, contact: Optional[Contact] = None) -> "IncomingMessage":
        text = None
        selection_id = None
        selection_title = None
        media = None

        if message.type == "text" and message.text:
            text = message.text.get("body")
        elif message.type == "interactive" and message.interactive:
            reply = message.interactive.button_reply or message.interactive.list_reply
            if reply:
                selection_id, selection_title = reply.id, reply.title
        elif message.type == "button" and message.button:
            selection_id, selection_title = message.button.payload, message.button.text
        elif message.type == "image":
            media = message.image
        elif message.type == "document":
            media = message.document

        profile_name = None
        if contact and contact.profile:
            profile_name = contact.profile.get("name")

        return cls(
            message_id=message.id,
            phone=message.from_,
            type=message.type,
            text=text,
            selection_id=selection_id,
            selection_title=selection_title,
            location=message.location if message.type == "location" else None,
            media_id=media.id if media else None,
            caption=media.caption if media else None,
            profile_name=profile_name,
        )
