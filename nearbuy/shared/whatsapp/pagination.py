"""
Paginación de listas largas.

WhatsApp permite 10 items seleccionables por lista. Cada página muestra 9
items y, si quedan más, un item de continuación cuyo id codifica la página
siguiente: `page_next_{n}` o `page_next_{list_key}:{n}`. El servidor no
recuerda qué contenía la página anterior: quien pagina debe volver a
entregar la colección completa.
"""
import math
import re
from typing import Generic, List, NamedTuple, Optional, Sequence, TypeVar

from nearbuy.models.payload import ListItem
from .limits import ITEMS_PER_PAGE

T = TypeVar("T")

PAGINATION_PREFIX = "page_next_"
_LIST_KEY_RE = re.compile(r"[A-Za-z0-9_.\-]+")
# Sólo dígitos ASCII sin ceros a la izquierda: el inverso exacto de encode_pagination_id
_PAGINATION_RE = re.compile(
    rf"{PAGINATION_PREFIX}(?:(?P<key>[A-Za-z0-9_.\-]+):)?(?P<page>[1-9][0-9]*)"
)


class Page(Generic[T]):
    """Una página de la colección."""

    def __init__(self, items: List[T], page: int, total_pages: int, total_items: int, page_size: int):
        self.items = items
        self.page = page
        self.total_pages = total_pages
        self.total_items = total_items
        self.page_size = page_size

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_more else None

    @property
    def remaining(self) -> int:
        """Items posteriores a esta página."""
        shown_until = (self.page - 1) * self.page_size + len(self.items)
        return max(self.total_items - shown_until, 0)

    @property
    def footer(self) -> Optional[str]:
        return f"Page {self.page} of {self.total_pages}" if self.total_pages > 1 else None

    def __repr__(self) -> str:
        return f"Page(page={self.page}, total_pages={self.total_pages}, items={len(self.items)})"


class PaginationToken(NamedTuple):
    list_key: Optional[str]
    page: int


def paginate(items: Sequence[T], page: int = 1, page_size: int = ITEMS_PER_PAGE) -> Page[T]:
    """
    Corta la colección en la página pedida (base 1).
    La página se ajusta al rango [1, total_pages]; una colección vacía
    tiene una única página vacía.
    """
    if page_size < 1:
        raise ValueError("page_size debe ser positivo")
    total_items = len(items)
    total_pages = max(math.ceil(total_items / page_size), 1)
    page = max(1, min(page, total_pages))
    offset = (page - 1) * page_size
    return Page(list(items[offset:offset + page_size]), page, total_pages, total_items, page_size)


def encode_pagination_id(page: int, list_key: Optional[str] = None) -> str:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValueError(f"Número de página inválido: {page!r}")
    if list_key is None:
        return f"{PAGINATION_PREFIX}{page}"
    if not _LIST_KEY_RE.fullmatch(list_key):
        raise ValueError(f"Clave de lista inválida: {list_key!r}")
    return f"{PAGINATION_PREFIX}{list_key}:{page}"


def parse_pagination_token(item_id: Optional[str]) -> Optional[PaginationToken]:
    """Decodifica un id de continuación; None si no lo es o la página no es positiva."""
    if not item_id:
        return None
    match = _PAGINATION_RE.fullmatch(item_id)
    if not match:
        return None
    return PaginationToken(match.group("key"), int(match.group("page")))


def parse_pagination_id(item_id: Optional[str]) -> Optional[int]:
    """Inverso exacto de encode_pagination_id para el número de página."""
    token = parse_pagination_token(item_id)
    return token.page if token else None


def is_pagination_id(item_id: Optional[str]) -> bool:
    return parse_pagination_token(item_id) is not None


def continuation_item(page: Page, list_key: Optional[str] = None) -> ListItem:
    """Item "More" que apunta a la página siguiente."""
    if not page.has_more:
        raise ValueError("La página no tiene continuación")
    return ListItem(
        id=encode_pagination_id(page.next_page, list_key),
        title=f"More ➡️ ({page.remaining} left)",
        description=f"Page {page.next_page} of {page.total_pages}",
    )
