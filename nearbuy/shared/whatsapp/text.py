import logging
from types import MappingProxyType
from typing import Mapping, Optional

from nearbuy.models.payload import MessageKind, MessagePayload
from nearbuy.schemas.phone_schema import mask_phone
from .limits import StructuralValidationError, TextField, TRUNCATION_MARKER, clean

logger = logging.getLogger(__name__)

# Sugerencia de ayuda al final de los textos, por idioma
MENU_HINTS: Mapping[str, str] = MappingProxyType({
    "en": "\n\n💡 Type *menu* for Main Menu",
    "ml": "\n\n💡 *menu* എന്ന് ടൈപ്പ് ചെയ്യൂ",
})


class TextMessageBuilder:
    """
    Builder de mensajes de texto.
    Los sufijos (sugerencia de menú, pie) nunca se pierden: si no caben se
    recorta el cuerpo original.
    """

    def __init__(self, to: str, hints: Mapping[str, str] = MENU_HINTS):
        self.to = to
        self._hints = hints
        self._body = ""
        self._preview_url = False
        self._reply_to: Optional[str] = None

    def body(self, body: str) -> "TextMessageBuilder":
        self._body = clean(body, TextField.TEXT_BODY, self.to)
        return self

    def preview_url(self, preview: bool = True) -> "TextMessageBuilder":
        self._preview_url = preview
        return self

    def reply_to(self, message_id: str) -> "TextMessageBuilder":
        self._reply_to = message_id
        return self

    def append_menu_hint(self, lang: str = "en") -> "TextMessageBuilder":
        hint = self._hints.get(lang) or self._hints["en"]
        self._body = self._safe_append(self._body, hint)
        return self

    def append_footer(self, text: str) -> "TextMessageBuilder":
        self._body = self._safe_append(self._body, f"\n\n_{text}_")
        return self

    @property
    def current_body(self) -> str:
        return self._body

    def _safe_append(self, body: str, suffix: str) -> str:
        hard = TextField.TEXT_BODY.limit.hard
        combined = body + suffix
        if len(combined) <= hard:
            return combined

        available = max(hard - len(suffix) - len(TRUNCATION_MARKER), 0)
        logger.warning(
            f"[WA-TEXT] Cuerpo recortado para añadir sufijo to={mask_phone(self.to)} "
            f"original_length={len(body)} suffix_length={len(suffix)} limit={hard}"
        )
        # Un sufijo mayor que el límite sólo puede recortarse a sí mismo
        return (body[:available] + TRUNCATION_MARKER + suffix)[:hard]

    def build(self) -> MessagePayload:
        if not self._body:
            raise StructuralValidationError("El cuerpo del mensaje es obligatorio")
        return MessagePayload(
            recipient=self.to,
            kind=MessageKind.TEXT,
            content={"body": self._body, "preview_url": self._preview_url},
            reply_to_message_id=self._reply_to,
        )
