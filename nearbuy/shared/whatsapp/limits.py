"""
Límites de la Cloud API de WhatsApp y política de truncado.

Cada campo de texto tiene un límite "blando" (legibilidad, sólo se registra)
y uno "duro" (la API rechaza el mensaje). Superar el duro trunca el texto
y añade el marcador, sin pasar nunca del límite.
"""
import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional

from nearbuy.schemas.phone_schema import mask_phone

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "…"

MAX_BUTTONS = 3
MAX_SECTIONS = 10
MAX_LIST_ITEMS = 10
# Un hueco de la lista se reserva para el item "More"
ITEMS_PER_PAGE = MAX_LIST_ITEMS - 1


class StructuralValidationError(ValueError):
    """El mensaje no cumple la estructura exigida por la API (error del llamador)."""
    pass


class FieldLimit(NamedTuple):
    soft: int
    hard: int


class TextField(str, Enum):
    TEXT_BODY = "text_body"
    INTERACTIVE_BODY = "interactive_body"
    HEADER = "header"
    FOOTER = "footer"
    BUTTON_TITLE = "button_title"
    LIST_BUTTON_TEXT = "list_button_text"
    SECTION_TITLE = "section_title"
    ITEM_TITLE = "item_title"
    ITEM_DESCRIPTION = "item_description"
    CAPTION = "caption"
    FILENAME = "filename"
    LOCATION_NAME = "location_name"
    LOCATION_ADDRESS = "location_address"
    LOCATION_REQUEST_BODY = "location_request_body"

    @property
    def limit(self) -> FieldLimit:
        return LIMITS[self]


LIMITS: Mapping[TextField, FieldLimit] = MappingProxyType({
    TextField.TEXT_BODY: FieldLimit(300, 4096),
    TextField.INTERACTIVE_BODY: FieldLimit(300, 1024),
    TextField.HEADER: FieldLimit(60, 60),
    TextField.FOOTER: FieldLimit(60, 60),
    TextField.BUTTON_TITLE: FieldLimit(20, 20),
    TextField.LIST_BUTTON_TEXT: FieldLimit(20, 20),
    TextField.SECTION_TITLE: FieldLimit(24, 24),
    TextField.ITEM_TITLE: FieldLimit(24, 24),
    TextField.ITEM_DESCRIPTION: FieldLimit(72, 72),
    TextField.CAPTION: FieldLimit(300, 1024),
    TextField.FILENAME: FieldLimit(240, 240),
    TextField.LOCATION_NAME: FieldLimit(100, 1000),
    TextField.LOCATION_ADDRESS: FieldLimit(300, 1000),
    TextField.LOCATION_REQUEST_BODY: FieldLimit(300, 1024),
})


def truncate(value: str, hard: int, marker: str = TRUNCATION_MARKER) -> str:
    """Recorta a `hard` caracteres como máximo, terminando en el marcador."""
    if len(value) <= hard:
        return value
    return value[:max(hard - len(marker), 0)] + marker


def sanitize_field(
    value: str,
    limit: FieldLimit,
    field: str,
    recipient: str,
    label: Optional[str] = None,
    include_original: bool = False,
) -> str:
    """
    Aplica la política de límites a un campo.

    Args:
        value: Texto original
        limit: Límites blando y duro del campo
        field: Nombre del campo para el log
        recipient: Destinatario (se enmascara en el log)
        label: Identificador del elemento (id de botón o de item)
        include_original: Registrar el texto original; sólo para etiquetas, nunca cuerpos

    Returns:
        str: Texto dentro del límite duro
    """
    length = len(value)
    field_name = getattr(field, "value", field)
    context = f"to={mask_phone(recipient)} field={field_name}"
    if label:
        context += f" id={label}"

    if length > limit.hard:
        original = f" original={value!r}" if include_original else ""
        logger.warning(
            f"[WA-LIMITS] Texto truncado {context} original_length={length} "
            f"limit={limit.hard}{original}"
        )
        return truncate(value, limit.hard)

    if length > limit.soft:
        logger.warning(
            f"[WA-LIMITS] Supera límite recomendado {context} length={length} soft_limit={limit.soft}"
        )
    return value


def clean(value: str, field: TextField, recipient: str, label: Optional[str] = None, include_original: bool = False) -> str:
    """Atajo de sanitize_field con el límite registrado para `field`."""
    return sanitize_field(value, field.limit, field, recipient, label=label, include_original=include_original)
