from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from nearbuy.models.flows import FlowType, MAIN_MENU_IDLE_STEP


class FlowPosition(BaseModel):
    """Par (flujo, paso): un estado de la máquina de sesiones."""
    model_config = ConfigDict(frozen=True)

    flow: FlowType
    step: str


class ConversationSession(BaseModel):
    """
    Estado vivo de la conversación de un teléfono.
    Existe exactamente una sesión por teléfono.
    """
    phone: str = Field(..., min_length=11, max_length=15)
    user_id: Optional[str] = None
    current_flow: FlowType = FlowType.MAIN_MENU
    current_step: str = MAIN_MENU_IDLE_STEP
    temp_data: Dict[str, Any] = Field(default_factory=dict)
    context_data: Dict[str, Any] = Field(default_factory=dict)
    # Pila de retroceso de un solo nivel
    previous: Optional[FlowPosition] = None
    last_activity_at: datetime
    last_message_id: Optional[str] = None
    last_message_type: Optional[str] = None
    language: str = Field("en", min_length=2, max_length=2)
    created_at: Optional[datetime] = None

    @property
    def position(self) -> FlowPosition:
        return FlowPosition(flow=self.current_flow, step=self.current_step)

    def absorb(self, other: "ConversationSession") -> None:
        """Copia en esta instancia el estado de otra (la última versión guardada)."""
        for name in type(self).model_fields:
            setattr(self, name, getattr(other, name))
