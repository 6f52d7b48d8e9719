from typing import List, Optional

from nearbuy.models.flows import ContextKey, FlowType, TempKey
from nearbuy.models.message import IncomingMessage
from nearbuy.models.payload import ListItem, MessagePayload
from nearbuy.models.session import ConversationSession
from nearbuy.models.shop import Shop, ShopCategory
from nearbuy.services.catalog import ShopCatalog
from nearbuy.services.session.session_manager import SessionManager
from nearbuy.shared.whatsapp import ButtonMessageBuilder, ListMessageBuilder, LocationMessageBuilder
from .base_flow import BaseFlow

CATEGORY_PREFIX = "cat_"
SHOP_PREFIX = "shop_"
CATEGORIES_LIST = "categories"
SHOPS_LIST = "shops"

BTN_LOCATION = "loc_show"
BTN_BACK_TO_LIST = "list_back"
BTN_MAIN_MENU = "main_menu"


class OfferBrowseFlow(BaseFlow):
    """
    Navegación de ofertas: categoría -> lista paginada de tiendas ->
    detalle de tienda -> pin de ubicación.
    """

    flow_type = FlowType.OFFERS_BROWSE

    def __init__(self, sessions: SessionManager, catalog: ShopCatalog):
        super().__init__(sessions)
        self.catalog = catalog

    async def start(self, session: ConversationSession) -> List[MessagePayload]:
        self.log_step(session.current_step, session.phone)
        return [self._categories(session, 1)]

    async def prompt(self, session: ConversationSession) -> List[MessagePayload]:
        step = session.current_step
        page = self.sessions.get_temp(session, TempKey.CURRENT_PAGE, 1)
        if step == "show_offers":
            return await self._shops(session, page)
        if step in ("view_offer", "show_location"):
            shop = await self._selected_shop(session)
            if shop:
                return [self._shop_detail(session, shop)]
        await self.sessions.set_step(session, "select_category")
        return [self._categories(session, 1)]

    async def show_page(self, session: ConversationSession, page: int, list_key: Optional[str] = None) -> List[MessagePayload]:
        has_category = self.sessions.get_temp(session, TempKey.SELECTED_CATEGORY) is not None
        if list_key is None:
            show_categories = session.current_step == "select_category" or not has_category
        else:
            # La clave de la lista manda sobre el paso actual
            show_categories = list_key != SHOPS_LIST or not has_category

        if show_categories:
            if session.current_step != "select_category":
                await self.sessions.set_step(session, "select_category")
            return [self._categories(session, page)]
        if session.current_step != "show_offers":
            await self.sessions.set_step(session, "show_offers")
        return await self._shops(session, page)

    async def handle(self, session: ConversationSession, message: IncomingMessage) -> List[MessagePayload]:
        step = session.current_step
        selection = message.selection_id or ""
        self.log_step(step, session.phone, f"selection={selection}")

        if step == "select_category":
            return await self._on_category(session, selection)
        if step == "show_offers":
            return await self._on_shop(session, selection)
        return await self._on_detail(session, selection)

    # ==================== PASOS ====================

    async def _on_category(self, session: ConversationSession, selection: str) -> List[MessagePayload]:
        category = self._parse_category(selection)
        if category is None:
            page = self.sessions.get_temp(session, TempKey.CURRENT_PAGE, 1)
            return [
                self.create_error_response(session, "Please pick a category from the list."),
                self._categories(session, page),
            ]

        await self.sessions.merge_temp(session, {
            TempKey.SELECTED_CATEGORY: category.value,
            TempKey.CURRENT_PAGE: 1,
        })
        await self.sessions.set_context(session, ContextKey.LAST_CATEGORY, category.value)
        await self.sessions.set_step(session, "show_offers")
        return await self._shops(session, 1)

    async def _on_shop(self, session: ConversationSession, selection: str) -> List[MessagePayload]:
        page = self.sessions.get_temp(session, TempKey.CURRENT_PAGE, 1)
        if not selection.startswith(SHOP_PREFIX):
            return await self._shops(session, page)

        shop = await self.catalog.get_shop(selection[len(SHOP_PREFIX):])
        if shop is None:
            return [
                self.create_error_response(session, "That shop is no longer available."),
                *await self._shops(session, page),
            ]

        await self.sessions.save_previous_step(session)
        await self.sessions.set_temp(session, TempKey.SELECTED_SHOP_ID, shop.id)
        await self.sessions.append_temp(session, TempKey.VIEWED_ITEM_IDS, shop.id)
        await self.sessions.set_step(session, "view_offer")
        return [self._shop_detail(session, shop)]

    async def _on_detail(self, session: ConversationSession, selection: str) -> List[MessagePayload]:
        if selection == BTN_BACK_TO_LIST:
            restored = await self.sessions.go_back(session)
            if not restored:
                return await self.router.main_menu(session)
            page = self.sessions.get_temp(session, TempKey.CURRENT_PAGE, 1)
            return await self._shops(session, page)

        shop = await self._selected_shop(session)
        if shop is None:
            await self.sessions.set_step(session, "select_category")
            return [
                self.create_error_response(session, "That shop is no longer available."),
                self._categories(session, 1),
            ]

        if selection == BTN_LOCATION:
            if not shop.has_location:
                return [self.create_error_response(session, "This shop has not shared its location yet.")]
            await self.sessions.set_step(session, "show_location")
            return self._shop_location(session, shop)

        return [self._shop_detail(session, shop)]

    # ==================== MENSAJES ====================

    def _categories(self, session: ConversationSession, page: int) -> MessagePayload:
        items = [ListItem(id=f"{CATEGORY_PREFIX}{c.value}", title=c.label) for c in ShopCategory]
        return (
            ListMessageBuilder(session.phone)
            .body("🛍️ *Browse Offers*\n\nWhich kind of shop are you looking for?")
            .button_text("Categories")
            .add_pagination_support(items, page, "Categories", list_key=CATEGORIES_LIST)
            .build()
        )

    async def _shops(self, session: ConversationSession, page: int) -> List[MessagePayload]:
        category = ShopCategory(self.sessions.get_temp(session, TempKey.SELECTED_CATEGORY, ShopCategory.OTHER.value))
        shops = await self.catalog.list_shops(category)
        if not shops:
            await self.sessions.set_step(session, "select_category")
            return [
                self.text(session, f"😕 No shops in {category.label} yet. Try another category.", with_hint=False),
                self._categories(session, 1),
            ]

        items = [ListItem(id=f"{SHOP_PREFIX}{shop.id}", title=shop.name, description=shop.summary or None) for shop in shops]
        payload = (
            ListMessageBuilder(session.phone)
            .body(f"{category.label}\n\n{len(shops)} shops found. Pick one to see details.")
            .button_text("View shops")
            .add_pagination_support(items, page, "Shops", list_key=SHOPS_LIST)
            .build()
        )
        return [payload]

    def _shop_detail(self, session: ConversationSession, shop: Shop) -> MessagePayload:
        lines = [f"🏪 *{shop.name}*", shop.category.label]
        if shop.address:
            lines.append(f"📍 {shop.address}")
        if shop.distance_km is not None:
            lines.append(f"🚶 {shop.distance_km:.1f} km away")
        lines.append(f"🏷️ {shop.offer_count} active offers")

        builder = ButtonMessageBuilder(session.phone).header("Shop details").body("\n".join(lines))
        if shop.has_location:
            builder.add_button(BTN_LOCATION, "📍 Location")
        return (
            builder.add_button(BTN_BACK_TO_LIST, "⬅️ Back to list")
            .add_button(BTN_MAIN_MENU, "🏠 Main Menu")
            .build()
        )

    def _shop_location(self, session: ConversationSession, shop: Shop) -> List[MessagePayload]:
        pin = LocationMessageBuilder(session.phone).coordinates(shop.latitude, shop.longitude).name(shop.name)
        if shop.address:
            pin.address(shop.address)
        follow_up = (
            ButtonMessageBuilder(session.phone)
            .body("What would you like to do next?")
            .add_button(BTN_BACK_TO_LIST, "⬅️ Back to list")
            .add_button(BTN_MAIN_MENU, "🏠 Main Menu")
            .build()
        )
        return [pin.build(), follow_up]

    async def _selected_shop(self, session: ConversationSession) -> Optional[Shop]:
        shop_id = self.sessions.get_temp(session, TempKey.SELECTED_SHOP_ID)
        return await self.catalog.get_shop(shop_id) if shop_id else None

    @staticmethod
    def _parse_category(selection: str) -> Optional[ShopCategory]:
        if not selection.startswith(CATEGORY_PREFIX):
            return None
        try:
            return ShopCategory(selection[len(CATEGORY_PREFIX):])
        except ValueError:
            return None
