# src/core/joins/chat.py
"""
Имя чат-комнаты для поездки или предложения.
Вычисляется при каждом вызове и нигде не кэшируется.
"""

from __future__ import annotations

from src.common.constants import ParentType
from src.common.exceptions import NotFoundError
from src.core.joins.repository import JoinRepository
from src.core.rides.repository import OfferRepository, TripRepository


def room_key(parent_type: ParentType, parent_id: int) -> str:
    return f"{parent_type.value}:{parent_id}"


class ChatRoomResolver:
    """
    - предложение -> offer:<id>
    - поездка с принятой заявкой на предложение -> offer:<offer_id>
    - иначе -> trip:<id>
    """

    def __init__(self, trips: TripRepository, offers: OfferRepository, joins: JoinRepository) -> None:
        self._trips = trips
        self._offers = offers
        self._joins = joins

    async def resolve(self, parent_type: ParentType, parent_id: int) -> str:
        if parent_type == ParentType.OFFER:
            if await self._offers.get_by_id(parent_id) is None:
                raise NotFoundError(f"Предложение {parent_id} не найдено")
            return room_key(ParentType.OFFER, parent_id)

        if await self._trips.get_by_id(parent_id) is None:
            raise NotFoundError(f"Поездка {parent_id} не найдена")

        offer_id = await self._joins.accepted_offer_for_trip(parent_id)
        if offer_id is not None:
            return room_key(ParentType.OFFER, offer_id)
        return room_key(ParentType.TRIP, parent_id)
