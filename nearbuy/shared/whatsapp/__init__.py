"""
Módulo para generar mensajes de WhatsApp.
Builders por tipo de mensaje que respetan los límites de la API.
"""

from .limits import (
    LIMITS,
    TRUNCATION_MARKER,
    FieldLimit,
    StructuralValidationError,
    TextField,
    sanitize_field,
)
from .text import TextMessageBuilder
from .buttons import ButtonMessageBuilder
from .lists import ListMessageBuilder
from .media import (
    DocumentMessageBuilder,
    ImageMessageBuilder,
    LocationContext,
    LocationMessageBuilder,
    LocationRequestBuilder,
)
from .pagination import (
    Page,
    PaginationToken,
    encode_pagination_id,
    paginate,
    parse_pagination_id,
    parse_pagination_token,
)
from .helper import WhatsAppHelper

# Exports principales para uso directo
__all__ = [
    'LIMITS',
    'TRUNCATION_MARKER',
    'FieldLimit',
    'StructuralValidationError',
    'TextField',
    'sanitize_field',
    'TextMessageBuilder',
    'ButtonMessageBuilder',
    'ListMessageBuilder',
    'LocationMessageBuilder',
    'LocationRequestBuilder',
    'LocationContext',
    'ImageMessageBuilder',
    'DocumentMessageBuilder',
    'Page',
    'PaginationToken',
    'paginate',
    'encode_pagination_id',
    'parse_pagination_id',
    'parse_pagination_token',
    'WhatsAppHelper',
]

# Funciones de conveniencia para importación rápida
create_interactive = WhatsAppHelper.create_interactive
create_confirmation = WhatsAppHelper.create_confirmation
