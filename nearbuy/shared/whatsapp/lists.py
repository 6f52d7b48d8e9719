import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from nearbuy.models.payload import ListItem, ListSection, MessageKind, MessagePayload
from nearbuy.schemas.phone_schema import mask_phone
from .limits import MAX_LIST_ITEMS, MAX_SECTIONS, StructuralValidationError, TextField, clean
from .pagination import continuation_item, paginate

logger = logging.getLogger(__name__)

ItemSpec = Union[ListItem, Dict[str, Any], tuple]


class ListMessageBuilder:
    """
    Builder para listas interactivas de WhatsApp.
    Responsabilidad única: generar estructuras de listas válidas para WhatsApp.

    Máximo 10 secciones y 10 items en total. Para colecciones grandes usar
    add_pagination_support(); si aun así se superan los 10 items, build()
    recorta las secciones finales y lo registra.
    """

    def __init__(self, to: str):
        self.to = to
        self._header: Optional[str] = None
        self._body = ""
        self._footer: Optional[str] = None
        self._button_text = ""
        self._sections: List[ListSection] = []
        self._reply_to: Optional[str] = None

    def header(self, header: str) -> "ListMessageBuilder":
        self._header = clean(header, TextField.HEADER, self.to)
        return self

    def body(self, body: str) -> "ListMessageBuilder":
        self._body = clean(body, TextField.INTERACTIVE_BODY, self.to)
        return self

    def footer(self, footer: str) -> "ListMessageBuilder":
        self._footer = clean(footer, TextField.FOOTER, self.to)
        return self

    def button_text(self, text: str) -> "ListMessageBuilder":
        self._button_text = clean(text, TextField.LIST_BUTTON_TEXT, self.to, include_original=True)
        return self

    def add_section(self, title: str, items: Sequence[ItemSpec]) -> "ListMessageBuilder":
        if len(self._sections) >= MAX_SECTIONS:
            raise StructuralValidationError(f"WhatsApp permite máximo {MAX_SECTIONS} secciones")
        title = clean(title, TextField.SECTION_TITLE, self.to, include_original=True) if title else ""
        rows = tuple(self._sanitize_item(ListItem.of(item)) for item in items)
        self._sections.append(ListSection(title=title, items=rows))
        return self

    def sections(self, sections: Sequence[Union[ListSection, Dict[str, Any]]]) -> "ListMessageBuilder":
        """Reemplaza todas las secciones. Acepta ListSection o {"title", "rows"}."""
        self._sections = []
        for section in sections:
            if isinstance(section, ListSection):
                self.add_section(section.title, section.items)
            else:
                self.add_section(section.get("title", ""), section.get("rows", []))
        return self

    def items(self, items: Sequence[ItemSpec]) -> "ListMessageBuilder":
        """Una sección sin título con estos items."""
        return self.add_section("", items)

    def add_pagination_support(
        self,
        all_items: Sequence[ItemSpec],
        page: int = 1,
        section_title: str = "",
        list_key: Optional[str] = None,
    ) -> "ListMessageBuilder":
        """
        Muestra la página `page` de `all_items` con item de continuación y
        pie "Page X of Y" cuando hay más de una página.

        Args:
            all_items: Colección completa, en orden
            page: Página pedida (base 1), se ajusta al rango válido
            section_title: Título de la sección
            list_key: Identifica la lista en el id de continuación
        """
        current = paginate(list(all_items), page)
        page_items = [ListItem.of(item) for item in current.items]

        logger.info(
            f"[WA-LIST] Paginación to={mask_phone(self.to)} total_items={current.total_items} "
            f"page={current.page} total_pages={current.total_pages} "
            f"showing={len(page_items)} has_more={current.has_more}"
        )

        if current.has_more:
            page_items.append(continuation_item(current, list_key))
        if current.footer:
            self.footer(current.footer)

        return self.add_section(section_title, page_items)

    def reply_to(self, message_id: str) -> "ListMessageBuilder":
        self._reply_to = message_id
        return self

    @property
    def total_item_count(self) -> int:
        return sum(section.count() for section in self._sections)

    def build(self) -> MessagePayload:
        if not self._body:
            raise StructuralValidationError("El cuerpo del mensaje es obligatorio")
        if not self._button_text:
            raise StructuralValidationError("El texto del botón de la lista es obligatorio")
        if self.total_item_count == 0:
            raise StructuralValidationError("Debe haber al menos una sección con items")

        sections = [section for section in self._sections if section.count()]
        if self.total_item_count > MAX_LIST_ITEMS:
            logger.warning(
                f"[WA-LIST] Items superan el máximo, se recortan to={mask_phone(self.to)} "
                f"total_items={self.total_item_count} max={MAX_LIST_ITEMS} "
                f"hint=usar add_pagination_support"
            )
            sections = self._trim_to_limit(sections)

        interactive = {
            "type": "list",
            "body": {"text": self._body},
            "action": {
                "button": self._button_text,
                "sections": [section.to_api() for section in sections],
            },
        }
        if self._header:
            interactive["header"] = {"type": "text", "text": self._header}
        if self._footer:
            interactive["footer"] = {"text": self._footer}

        return MessagePayload(
            recipient=self.to,
            kind=MessageKind.LIST,
            content=interactive,
            reply_to_message_id=self._reply_to,
        )

    @staticmethod
    def _trim_to_limit(sections: List[ListSection]) -> List[ListSection]:
        """Conserva secciones completas en orden; la primera que no cabe se recorta y las demás se descartan."""
        kept: List[ListSection] = []
        count = 0
        for section in sections:
            available = MAX_LIST_ITEMS - count
            if available <= 0:
                break
            if section.count() <= available:
                kept.append(section)
                count += section.count()
            else:
                kept.append(section.take(available))
                break
        return kept

    def _sanitize_item(self, item: ListItem) -> ListItem:
        title = clean(item.title, TextField.ITEM_TITLE, self.to, label=item.id, include_original=True)
        description = item.description
        if description:
            description = clean(description, TextField.ITEM_DESCRIPTION, self.to, label=item.id)
        return ListItem(id=item.id, title=title, description=description)
