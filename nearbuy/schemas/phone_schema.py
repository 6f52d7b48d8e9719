from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError
import re

from nearbuy.core.config import get_settings


class PhoneSchema(BaseModel):
    """Schema para validar y normalizar el teléfono (formato E.164 sin '+')"""
    phone: str = Field(..., min_length=1)

    @field_validator('phone')
    def validate_phone(cls, v):
        digits = re.sub(r'\D', '', v)
        # Prefijo internacional 00
        if digits.startswith('00'):
            digits = digits[2:]
        # Prefijo troncal nacional: 0 + 10 dígitos
        if len(digits) == 11 and digits.startswith('0'):
            digits = digits[1:]
        if len(digits) == 10:
            digits = f"{get_settings().COUNTRY_CODE}{digits}"  # Agregar código de país
        if not re.match(r'^\d{11,15}$', digits):
            raise PydanticCustomError(
                'phone_invalid',
                "El número debe tener entre 11 y 15 dígitos incluyendo el código de país"
            )
        return digits


def normalize_phone(raw: str) -> str:
    """Devuelve el teléfono canónico o lanza ValidationError."""
    return PhoneSchema(phone=raw).phone


def mask_phone(phone: str) -> str:
    """Enmascara un teléfono para los logs: 919876543210 -> 919****210"""
    if not phone:
        return "<sin-telefono>"
    if len(phone) <= 6:
        return "*" * len(phone)
    return f"{phone[:3]}{'*' * 4}{phone[-3:]}"
