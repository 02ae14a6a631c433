"""Remote service integrations.

The dashboard only reads from Trello; every client implements
``BaseIntegration``.
"""

from ciudades.integrations.base import BaseIntegration
from ciudades.integrations.trello import TrelloApiError, TrelloClient

__all__ = [
    "BaseIntegration",
    "TrelloApiError",
    "TrelloClient",
]
