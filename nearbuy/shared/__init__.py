"""
Módulo de componentes compartidos para el bot de WhatsApp.
Contiene helpers reutilizables para diferentes partes de la aplicación.
"""

from .whatsapp import (
    ButtonMessageBuilder,
    ListMessageBuilder,
    TextMessageBuilder,
    WhatsAppHelper,
    create_interactive,
    create_confirmation
)

__all__ = [
    'ButtonMessageBuilder',
    'ListMessageBuilder',
    'TextMessageBuilder',
    'WhatsAppHelper',
    'create_interactive',
    'create_confirmation'
]
