from typing import Dict, List, Optional, Sequence, Tuple, Union

from nearbuy.models.payload import ButtonOption, MessageKind, MessagePayload
from .limits import MAX_BUTTONS, StructuralValidationError, TextField, clean

ButtonSpec = Union[ButtonOption, Dict[str, str], Tuple[str, str]]


class ButtonMessageBuilder:
    """
    Builder para mensajes con botones de respuesta de WhatsApp.
    Responsabilidad única: generar estructuras de botones válidas para WhatsApp.

    Un 4º botón es un error estructural: los menús deben planificarse con
    3 botones como máximo. Los títulos largos se truncan con aviso.
    """

    MAX_BUTTONS = MAX_BUTTONS

    def __init__(self, to: str):
        self.to = to
        self._header: Optional[str] = None
        self._body = ""
        self._footer: Optional[str] = None
        self._buttons: List[ButtonOption] = []
        self._reply_to: Optional[str] = None

    def header(self, header: str) -> "ButtonMessageBuilder":
        self._header = clean(header, TextField.HEADER, self.to)
        return self

    def body(self, body: str) -> "ButtonMessageBuilder":
        self._body = clean(body, TextField.INTERACTIVE_BODY, self.to)
        return self

    def footer(self, footer: str) -> "ButtonMessageBuilder":
        self._footer = clean(footer, TextField.FOOTER, self.to)
        return self

    def add_button(self, button_id: str, title: str) -> "ButtonMessageBuilder":
        if len(self._buttons) >= self.MAX_BUTTONS:
            raise StructuralValidationError(
                f"WhatsApp permite máximo {self.MAX_BUTTONS} botones por mensaje"
            )
        self._buttons.append(self._make_button(button_id, title))
        return self

    def buttons(self, buttons: Sequence[ButtonSpec]) -> "ButtonMessageBuilder":
        """Reemplaza la lista completa de botones."""
        if len(buttons) > self.MAX_BUTTONS:
            raise StructuralValidationError(
                f"WhatsApp permite máximo {self.MAX_BUTTONS} botones, recibidos: {len(buttons)}"
            )
        self._buttons = []
        for btn in buttons:
            if isinstance(btn, ButtonOption):
                self.add_button(btn.id, btn.title)
            elif isinstance(btn, dict):
                self.add_button(btn.get("id", ""), btn.get("title", ""))
            else:
                self.add_button(*btn)
        return self

    # Atajos: cada uno reinicia la lista de botones

    def yes_no(self, yes_label: str = "✅ Yes", no_label: str = "❌ No",
               yes_id: str = "yes", no_id: str = "no") -> "ButtonMessageBuilder":
        self._buttons = []
        return self.add_button(yes_id, yes_label).add_button(no_id, no_label)

    def confirm_cancel(self, confirm_label: str = "✅ Confirm",
                       cancel_label: str = "❌ Cancel") -> "ButtonMessageBuilder":
        self._buttons = []
        return self.add_button("confirm", confirm_label).add_button("cancel", cancel_label)

    def confirm_edit_cancel(self, confirm_label: str = "✅ Confirm", edit_label: str = "✏️ Edit",
                            cancel_label: str = "❌ Cancel") -> "ButtonMessageBuilder":
        self._buttons = []
        return (
            self.add_button("confirm", confirm_label)
            .add_button("edit", edit_label)
            .add_button("cancel", cancel_label)
        )

    def send_edit_cancel(self) -> "ButtonMessageBuilder":
        self._buttons = []
        return (
            self.add_button("send", "📤 Send")
            .add_button("edit", "✏️ Edit")
            .add_button("cancel", "❌ Cancel")
        )

    def reply_to(self, message_id: str) -> "ButtonMessageBuilder":
        self._reply_to = message_id
        return self

    @property
    def button_count(self) -> int:
        return len(self._buttons)

    def build(self) -> MessagePayload:
        if not self._body:
            raise StructuralValidationError("El cuerpo del mensaje es obligatorio")
        if not self._buttons:
            raise StructuralValidationError("Debe proporcionar al menos un botón")

        interactive = {
            "type": "button",
            "body": {"text": self._body},
            "action": {"buttons": [btn.to_api() for btn in self._buttons]},
        }
        if self._header:
            interactive["header"] = {"type": "text", "text": self._header}
        if self._footer:
            interactive["footer"] = {"text": self._footer}

        return MessagePayload(
            recipient=self.to,
            kind=MessageKind.BUTTON,
            content=interactive,
            reply_to_message_id=self._reply_to,
        )

    def _make_button(self, button_id: str, title: str) -> ButtonOption:
        if not button_id or not title:
            raise StructuralValidationError("Cada botón debe tener 'id' y 'title'")
        if any(btn.id == button_id for btn in self._buttons):
            raise StructuralValidationError(f"Id de botón repetido: {button_id}")
        title = clean(title, TextField.BUTTON_TITLE, self.to, label=button_id, include_original=True)
        return ButtonOption(id=button_id, title=title)

    @staticmethod
    def can_use_buttons(items_count: int) -> bool:
        """
        Verifica si se pueden usar botones según la cantidad de elementos.

        Returns:
            bool: True si se pueden usar botones, False si se debe usar lista
        """
        return items_count <= MAX_BUTTONS
