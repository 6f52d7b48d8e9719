# tests/test_pagination.py
"""Tests for paginated lists and continuation ids (shared/whatsapp/pagination)."""

import pytest

from conftest import PHONE
from nearbuy.models.payload import ListItem
from nearbuy.shared.whatsapp import (
    ListMessageBuilder,
    PaginationToken,
    encode_pagination_id,
    paginate,
    parse_pagination_id,
    parse_pagination_token,
)
from nearbuy.shared.whatsapp.pagination import is_pagination_id


def _items(count):
    return [ListItem(id=f"shop_{i:02d}", title=f"Shop {i:02d}") for i in range(1, count + 1)]


def _page(items, page, list_key="shops"):
    return (
        ListMessageBuilder(PHONE)
        .body("Pick a shop")
        .button_text("View shops")
        .add_pagination_support(items, page, "Shops", list_key=list_key)
        .build()
    )


# ── Páginas ──────────────────────────────────────────────


def test_first_page_of_23_items():
    payload = _page(_items(23), 1)

    rows = payload.sections[0].items
    assert len(rows) == 10
    assert [r.id for r in rows[:9]] == [f"shop_{i:02d}" for i in range(1, 10)]
    assert rows[9].id == "page_next_shops:2"
    assert rows[9].title == "More ➡️ (14 left)"
    assert rows[9].description == "Page 2 of 3"
    assert payload.footer_text == "Page 1 of 3"


def test_middle_page_of_23_items():
    rows = _page(_items(23), 2).sections[0].items

    assert len(rows) == 10
    assert rows[0].id == "shop_10"
    assert rows[9].title == "More ➡️ (5 left)"


def test_last_page_of_23_items():
    payload = _page(_items(23), 3)

    rows = payload.sections[0].items
    assert [r.id for r in rows] == [f"shop_{i:02d}" for i in range(19, 24)]
    assert not any(is_pagination_id(r.id) for r in rows)
    assert payload.footer_text == "Page 3 of 3"


def test_exact_multiple_has_no_dangling_page():
    items = _items(18)

    current = paginate(items, 2)
    assert current.total_pages == 2
    assert len(current.items) == 9
    assert not current.has_more

    rows = _page(items, 2).sections[0].items
    assert len(rows) == 9
    assert not any(is_pagination_id(r.id) for r in rows)


def test_single_page_has_no_footer_or_continuation():
    payload = _page(_items(9), 1)

    assert len(payload.sections[0].items) == 9
    assert payload.footer_text is None


def test_ten_items_spill_into_a_second_page():
    rows = _page(_items(10), 1).sections[0].items

    assert rows[-1].id == "page_next_shops:2"
    assert rows[-1].title == "More ➡️ (1 left)"


def test_following_continuations_visits_every_item_once():
    items = _items(23)
    seen = []
    page = 1
    while page is not None:
        rows = _page(items, page).sections[0].items
        page = None
        for row in rows:
            next_page = parse_pagination_id(row.id)
            if next_page is not None:
                page = next_page
            else:
                seen.append(row.id)

    assert seen == [item.id for item in items]


def test_requested_page_is_clamped():
    items = _items(23)

    assert paginate(items, 99).page == 3
    assert paginate(items, 0).page == 1
    assert paginate(items, -4).items[0].id == "shop_01"


def test_empty_collection_has_one_empty_page():
    current = paginate([], 1)

    assert current.total_pages == 1
    assert current.items == []
    assert current.footer is None
    assert not current.has_more


def test_custom_page_size():
    current = paginate(list(range(7)), 2, page_size=3)

    assert current.items == [3, 4, 5]
    assert current.remaining == 1
    assert current.next_page == 3


# ── Ids de continuación ──────────────────────────────────


def test_encode_and_parse_page_ids():
    assert encode_pagination_id(3) == "page_next_3"
    assert parse_pagination_id("page_next_3") == 3
    assert encode_pagination_id(2, "shops") == "page_next_shops:2"
    assert parse_pagination_token("page_next_shops:2") == PaginationToken("shops", 2)
    assert parse_pagination_token("page_next_7") == PaginationToken(None, 7)


@pytest.mark.parametrize("item_id", [
    None,
    "",
    "page_next_",
    "page_next_0",
    "page_next_-1",
    "page_next_abc",
    "page_next_2x",
    "page_next_5\n",
    "page_next_shops:2\n",
    "page_next_\u0663",
    "page_next_\uff12",
    "page_next_05",
    " page_next_5",
    "next_2",
    "cat_grocery",
])
def test_non_pagination_ids_parse_to_none(item_id):
    assert parse_pagination_id(item_id) is None
    assert not is_pagination_id(item_id)


@pytest.mark.parametrize("page,list_key", [(0, None), (-1, None), (True, None), (2, "bad key"), (2, ""), (2, "shops\n")])
def test_invalid_pages_cannot_be_encoded(page, list_key):
    with pytest.raises(ValueError):
        encode_pagination_id(page, list_key)
