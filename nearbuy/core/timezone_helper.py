import logging
from datetime import datetime, timedelta
import pytz

from nearbuy.core.config import get_settings

logger = logging.getLogger(__name__)


class TimezoneHelper:
    """
    Helper para obtener la hora local del servicio.
    Responsabilidad única: ser el reloj por defecto del motor de sesiones.
    """

    @staticmethod
    def get_timezone():
        """Zona horaria configurada (NEARBUY_TIMEZONE)."""
        return pytz.timezone(get_settings().TIMEZONE)

    @staticmethod
    def now() -> datetime:
        """Fecha y hora actual con zona horaria."""
        return datetime.now(TimezoneHelper.get_timezone())

    @staticmethod
    def days_ago(days: int) -> datetime:
        """
        Momento exacto de hace `days` días.

        Args:
            days: Número de días hacia atrás

        Returns:
            datetime: Fecha con zona horaria
        """
        return TimezoneHelper.now() - timedelta(days=days)

    @staticmethod
    def minutes_between(start: datetime, end: datetime) -> float:
        """
        Minutos transcurridos entre dos fechas.
        Las fechas sin zona horaria se interpretan en la zona configurada.
        """
        tz = TimezoneHelper.get_timezone()
        if start.tzinfo is None:
            start = tz.localize(start)
        if end.tzinfo is None:
            end = tz.localize(end)
        return (end - start).total_seconds() / 60
