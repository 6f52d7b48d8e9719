import asyncio
import httpx, logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_fixed

from nearbuy.core.config import get_settings
from nearbuy.models.payload import MessagePayload
from nearbuy.schemas.phone_schema import mask_phone

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class WhatsAppAPIError(Exception):
    """Error al llamar a la Cloud API."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, WhatsAppAPIError) and exc.retryable


class SendOutcome(BaseModel):
    """Resultado terminal de un envío."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    attempts: int = 0


class WhatsAppClient:
    """
    Encapsula las llamadas a la Cloud API.
    Responsabilidad única: enviar mensajes salientes.

    send() nunca lanza por fallos de la API: devuelve un SendOutcome.
    Reintenta 429, 5xx y timeouts con una espera fija.
    """
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        attempts: Optional[int] = None,
        retry_delay_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        settings = get_settings()
        self.url = f"{settings.BASE_URL}/{settings.PHONE_ID}/messages"
        self.headers = {
            "Authorization": f"Bearer {settings.META_TOKEN}",
            "Content-Type": "application/json"
        }
        self.attempts = max(attempts if attempts is not None else settings.SEND_ATTEMPTS, 1)
        self.retry_delay = (retry_delay_ms if retry_delay_ms is not None else settings.RETRY_DELAY_MS) / 1000
        self._client = client
        self._sleep = sleep

    async def send(self, payload: MessagePayload) -> SendOutcome:
        """
        Envía un mensaje construido por un builder.

        Args:
            payload: Mensaje terminado

        Returns:
            SendOutcome: éxito con el id de WhatsApp o el último error
        """
        to = mask_phone(payload.recipient)
        body = payload.to_api()
        kind = payload.kind.value
        attempt_number = 0

        def log_retry(retry_state: RetryCallState):
            exc = retry_state.outcome.exception()
            logger.warning(
                f"[WA] Fallo transitorio to={to} kind={kind} "
                f"attempt={retry_state.attempt_number} status={exc.status_code}: {exc}"
            )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_fixed(self.retry_delay),
                retry=retry_if_exception(_is_retryable),
                before_sleep=log_retry,
                sleep=self._sleep,
                reraise=True,
            ):
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    data = await self._post(body)
        except WhatsAppAPIError as exc:
            logger.error(
                f"[WA] Envío fallido to={to} kind={kind} "
                f"attempts={attempt_number} status={exc.status_code}: {exc}"
            )
            return SendOutcome(
                success=False,
                error=str(exc),
                status_code=exc.status_code,
                attempts=attempt_number,
            )

        message_id = (data.get("messages") or [{}])[0].get("id")
        logger.info(
            f"[WA] Mensaje enviado to={to} kind={kind} "
            f"attempts={attempt_number} wa_id={message_id}"
        )
        return SendOutcome(success=True, message_id=message_id, status_code=200, attempts=attempt_number)

    async def mark_as_read(self, message_id: str) -> bool:
        """Marca un mensaje entrante como leído. Best-effort."""
        try:
            await self._post({
                "messaging_product": "whatsapp",
                "status": "read",
                "message_id": message_id,
            })
            return True
        except WhatsAppAPIError as exc:
            logger.warning(f"[WA] No se pudo marcar como leído {message_id}: {exc}")
            return False

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self._client is not None:
            return await self._do_post(self._client, payload)
        async with httpx.AsyncClient(timeout=10) as client:
            return await self._do_post(client, payload)

    async def _do_post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            r = await client.post(self.url, headers=self.headers, json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            # Propaga un error de dominio, no el de httpx
            raise WhatsAppAPIError(
                self._error_message(exc.response),
                status_code=status,
                retryable=status in RETRYABLE_STATUS,
            ) from exc
        except httpx.TimeoutException as exc:
            raise WhatsAppAPIError("Timeout al llamar a la Cloud API", retryable=True) from exc
        except httpx.TransportError as exc:
            raise WhatsAppAPIError(f"Error de conexión: {exc}", retryable=True) from exc
        return r.json() if r.content else {}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error", {})
        except ValueError:
            return response.text[:200]
        return error.get("message") or response.text[:200]

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
