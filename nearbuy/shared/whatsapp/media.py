"""
Builders de ubicación, solicitud de ubicación, imagen y documento.
"""
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from nearbuy.models.payload import MessageKind, MessagePayload
from .limits import StructuralValidationError, TextField, clean

_URL_ADAPTER = TypeAdapter(HttpUrl)


def _validate_url(url: str) -> str:
    try:
        _URL_ADAPTER.validate_python(url)
    except ValidationError as e:
        raise StructuralValidationError(f"URL inválida: {url!r}") from e
    return url


class LocationMessageBuilder:
    """Pin de ubicación (p. ej. la tienda seleccionada)."""

    def __init__(self, to: str):
        self.to = to
        self._latitude: Optional[float] = None
        self._longitude: Optional[float] = None
        self._name: Optional[str] = None
        self._address: Optional[str] = None
        self._reply_to: Optional[str] = None

    def coordinates(self, latitude: float, longitude: float) -> "LocationMessageBuilder":
        return self.latitude(latitude).longitude(longitude)

    def latitude(self, latitude: float) -> "LocationMessageBuilder":
        if not -90 <= latitude <= 90:
            raise StructuralValidationError("La latitud debe estar entre -90 y 90")
        self._latitude = float(latitude)
        return self

    def longitude(self, longitude: float) -> "LocationMessageBuilder":
        if not -180 <= longitude <= 180:
            raise StructuralValidationError("La longitud debe estar entre -180 y 180")
        self._longitude = float(longitude)
        return self

    def name(self, name: str) -> "LocationMessageBuilder":
        self._name = clean(name, TextField.LOCATION_NAME, self.to)
        return self

    def address(self, address: str) -> "LocationMessageBuilder":
        self._address = clean(address, TextField.LOCATION_ADDRESS, self.to)
        return self

    def reply_to(self, message_id: str) -> "LocationMessageBuilder":
        self._reply_to = message_id
        return self

    def build(self) -> MessagePayload:
        if self._latitude is None or self._longitude is None:
            raise StructuralValidationError("Las coordenadas (latitud y longitud) son obligatorias")

        location = {"latitude": self._latitude, "longitude": self._longitude}
        if self._name:
            location["name"] = self._name
        if self._address:
            location["address"] = self._address

        return MessagePayload(
            recipient=self.to,
            kind=MessageKind.LOCATION,
            content=location,
            reply_to_message_id=self._reply_to,
        )


class LocationContext:
    GENERIC = "generic"
    REGISTRATION = "registration"
    SHOP_REGISTRATION = "shop_registration"
    NEARBY_OFFERS = "nearby_offers"
    PRODUCT_SEARCH = "product_search"
    UPDATE = "update"


# Textos por (contexto, idioma); todos incluyen la nota de privacidad
LOCATION_REQUEST_TEXTS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    LocationContext.GENERIC: MappingProxyType({
        "en": "📍 Please share your location.\n\nThis helps us show you nearby options. Your location is kept private and secure. 🔒",
        "ml": "📍 നിങ്ങളുടെ ലൊക്കേഷൻ ഷെയർ ചെയ്യാമോ?\n\nസമീപത്തെ ഓപ്ഷനുകൾ കാണിക്കാൻ ഇത് സഹായിക്കും. നിങ്ങളുടെ ലൊക്കേഷൻ സുരക്ഷിതമാണ്. 🔒",
    }),
    LocationContext.REGISTRATION: MappingProxyType({
        "en": "📍 Please share your location to complete registration.\n\nWe'll use this to show you offers and shops nearby. Your location stays private. 🔒",
        "ml": "📍 രജിസ്ട്രേഷൻ പൂർത്തിയാക്കാൻ ലൊക്കേഷൻ ഷെയർ ചെയ്യൂ.\n\nസമീപത്തെ ഓഫറുകളും കടകളും കാണിക്കാൻ ഇത് ഉപയോഗിക്കും. നിങ്ങളുടെ ലൊക്കേഷൻ രഹസ്യമായി സൂക്ഷിക്കും. 🔒",
    }),
    LocationContext.SHOP_REGISTRATION: MappingProxyType({
        "en": "📍 Please share your shop location.\n\nCustomers will see this when browsing nearby offers. Make sure you're at your shop! 🏪",
        "ml": "📍 നിങ്ങളുടെ കടയുടെ ലൊക്കേഷൻ ഷെയർ ചെയ്യൂ.\n\nഓഫറുകൾ ബ്രൗസ് ചെയ്യുമ്പോൾ കസ്റ്റമേഴ്സ് ഇത് കാണും. നിങ്ങൾ കടയിൽ ഉണ്ടെന്ന് ഉറപ്പാക്കൂ! 🏪",
    }),
    LocationContext.NEARBY_OFFERS: MappingProxyType({
        "en": "📍 Share your location to see nearby offers.\n\nWe'll show you the best deals within 5 km. Your location is only used for this search. 🔒",
        "ml": "📍 സമീപത്തെ ഓഫറുകൾ കാണാൻ ലൊക്കേഷൻ ഷെയർ ചെയ്യൂ.\n\n5 km ചുറ്റളവിലെ മികച്ച ഡീലുകൾ കാണിക്കാം. ഈ സെർച്ചിന് മാത്രമേ ലൊക്കേഷൻ ഉപയോഗിക്കൂ. 🔒",
    }),
    LocationContext.PRODUCT_SEARCH: MappingProxyType({
        "en": "📍 Share your location so we can find shops near you.\n\nWe'll send your request to nearby shops only. 🔒",
        "ml": "📍 സമീപത്തെ കടകൾ കണ്ടെത്താൻ ലൊക്കേഷൻ ഷെയർ ചെയ്യൂ.\n\nനിങ്ങളുടെ അഭ്യർത്ഥന സമീപത്തെ കടകളിലേക്ക് മാത്രം അയക്കും. 🔒",
    }),
    LocationContext.UPDATE: MappingProxyType({
        "en": "📍 Want to update your location?\n\nTap the button below to share your current location. 🔄",
        "ml": "📍 ലൊക്കേഷൻ അപ്ഡേറ്റ് ചെയ്യണോ?\n\nതാഴെയുള്ള ബട്ടൺ ടാപ്പ് ചെയ്ത് നിലവിലെ ലൊക്കേഷൻ ഷെയർ ചെയ്യൂ. 🔄",
    }),
})

PRIVACY_NOTES: Mapping[str, str] = MappingProxyType({
    "en": "\n\nYour location is kept private and secure. 🔒",
    "ml": "\n\nനിങ്ങളുടെ ലൊക്കേഷൻ സുരക്ഷിതമാണ്. 🔒",
})


class LocationRequestBuilder:
    """Mensaje con el botón nativo "Send location"."""

    def __init__(self, to: str, texts: Mapping[str, Mapping[str, str]] = LOCATION_REQUEST_TEXTS):
        self.to = to
        self._texts = texts
        self._body = ""
        self._reply_to: Optional[str] = None

    def body(self, body: str) -> "LocationRequestBuilder":
        self._body = clean(body, TextField.LOCATION_REQUEST_BODY, self.to)
        return self

    def for_context(self, context: str, lang: str = "en") -> "LocationRequestBuilder":
        texts = self._texts[context]
        return self.body(texts.get(lang) or texts["en"])

    def for_generic(self, lang: str = "en") -> "LocationRequestBuilder":
        return self.for_context(LocationContext.GENERIC, lang)

    def for_registration(self, lang: str = "en") -> "LocationRequestBuilder":
        return self.for_context(LocationContext.REGISTRATION, lang)

    def for_shop_registration(self, lang: str = "en") -> "LocationRequestBuilder":
        return self.for_context(LocationContext.SHOP_REGISTRATION, lang)

    def for_nearby_offers(self, lang: str = "en") -> "LocationRequestBuilder":
        return self.for_context(LocationContext.NEARBY_OFFERS, lang)

    def for_product_search(self, lang: str = "en") -> "LocationRequestBuilder":
        return self.for_context(LocationContext.PRODUCT_SEARCH, lang)

    def for_update(self, lang: str = "en") -> "LocationRequestBuilder":
        return self.for_context(LocationContext.UPDATE, lang)

    def custom(self, message: str, lang: str = "en") -> "LocationRequestBuilder":
        return self.body(message + (PRIVACY_NOTES.get(lang) or PRIVACY_NOTES["en"]))

    def reply_to(self, message_id: str) -> "LocationRequestBuilder":
        self._reply_to = message_id
        return self

    def build(self) -> MessagePayload:
        if not self._body:
            raise StructuralValidationError(
                "El cuerpo es obligatorio: usar body() o un contexto como for_registration()"
            )
        return MessagePayload(
            recipient=self.to,
            kind=MessageKind.LOCATION_REQUEST,
            content={
                "type": "location_request_message",
                "body": {"text": self._body},
                "action": {"name": "send_location"},
            },
            reply_to_message_id=self._reply_to,
        )


class _MediaMessageBuilder:
    """Base de imagen y documento: URL y media id son excluyentes."""

    kind: MessageKind

    def __init__(self, to: str):
        self.to = to
        self._url: Optional[str] = None
        self._media_id: Optional[str] = None
        self._caption: Optional[str] = None
        self._reply_to: Optional[str] = None

    def url(self, url: str):
        self._url = _validate_url(url)
        self._media_id = None
        return self

    def media_id(self, media_id: str):
        if not media_id:
            raise StructuralValidationError("El media id no puede estar vacío")
        self._media_id = media_id
        self._url = None
        return self

    def caption(self, caption: str):
        self._caption = clean(caption, TextField.CAPTION, self.to)
        return self

    def reply_to(self, message_id: str):
        self._reply_to = message_id
        return self

    def _media_content(self) -> dict:
        if not self._url and not self._media_id:
            raise StructuralValidationError("Se requiere una URL o un media id")
        content = {"link": self._url} if self._url else {"id": self._media_id}
        if self._caption:
            content["caption"] = self._caption
        return content

    def build(self) -> MessagePayload:
        return MessagePayload(
            recipient=self.to,
            kind=self.kind,
            content=self._media_content(),
            reply_to_message_id=self._reply_to,
        )


class ImageMessageBuilder(_MediaMessageBuilder):
    kind = MessageKind.IMAGE


class DocumentMessageBuilder(_MediaMessageBuilder):
    kind = MessageKind.DOCUMENT

    def __init__(self, to: str):
        super().__init__(to)
        self._filename: Optional[str] = None

    def filename(self, filename: str) -> "DocumentMessageBuilder":
        self._filename = clean(filename, TextField.FILENAME, self.to)
        return self

    def _media_content(self) -> dict:
        content = super()._media_content()
        if self._filename:
            content["filename"] = self._filename
        return content
