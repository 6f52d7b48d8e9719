"""
Módulo de flujos de conversación para WhatsApp Bot.

Uso:
    from nearbuy.services.conversation.flows import MainMenuFlow, OfferBrowseFlow
"""

from .base_flow import BaseFlow
from .main_menu_flow import MainMenuFlow
from .offer_browse_flow import OfferBrowseFlow

__all__ = [
    "BaseFlow",
    "MainMenuFlow",
    "OfferBrowseFlow",
]
