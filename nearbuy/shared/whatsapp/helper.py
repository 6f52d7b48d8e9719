from typing import Optional, Sequence

from nearbuy.models.payload import ListItem, MessagePayload, as_items
from .buttons import ButtonMessageBuilder
from .limits import MAX_LIST_ITEMS
from .lists import ItemSpec, ListMessageBuilder


class WhatsAppHelper:
    """
    Helper unificado que decide automáticamente entre botones o listas.
    Responsabilidad única: automatizar la elección del mejor formato según la cantidad de opciones.
    """

    @staticmethod
    def create_interactive(
        to: str,
        text: str,
        options: Sequence[ItemSpec],
        button_text: str = "Select",
        section_title: str = "Options",
        force_list: bool = False,
        page: int = 1,
        list_key: Optional[str] = None,
    ) -> MessagePayload:
        """
        Crea automáticamente botones o lista según la cantidad de opciones.

        Args:
            to: Teléfono destino
            text: Texto del mensaje
            options: Opciones como ListItem, dict {"id","title","description"} o tuplas
            button_text: Texto del botón (solo para listas)
            section_title: Título de la sección (solo para listas)
            force_list: Forzar uso de lista aunque haya pocas opciones
            page: Página a mostrar si la lista necesita paginación
            list_key: Clave de la lista para los ids de continuación

        Returns:
            MessagePayload: Botones (hasta 3 opciones) o lista
        """
        items = as_items(options)
        if not items:
            raise ValueError("Debe proporcionar al menos una opción")

        if ButtonMessageBuilder.can_use_buttons(len(items)) and not force_list:
            builder = ButtonMessageBuilder(to).body(text)
            for item in items:
                builder.add_button(item.id, item.title)
            return builder.build()

        builder = ListMessageBuilder(to).body(text).button_text(button_text)
        if len(items) > MAX_LIST_ITEMS:
            builder.add_pagination_support(items, page, section_title, list_key)
        else:
            builder.add_section(section_title, items)
        return builder.build()

    @staticmethod
    def create_confirmation(to: str, text: str) -> MessagePayload:
        """Botones de confirmación (siempre botones, nunca lista)."""
        return ButtonMessageBuilder(to).body(text).confirm_cancel().build()

    @staticmethod
    def option(item_id: str, title: str, description: Optional[str] = None) -> ListItem:
        return ListItem(id=item_id, title=title, description=description)
