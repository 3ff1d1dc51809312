# src/core/joins/reconciler.py
"""
Сверка связей заявок.

Правило A: у заявки есть offer_id, нет trip_id -> ищем поездку автора
заявки с тем же маршрутом и датой, что у предложения.
Правило B: у заявки есть trip_id, нет offer_id -> ищем предложение
с тем же маршрутом и датой, что у поездки.

Заполнение условное (только если поле ещё NULL), поэтому повторные
и параллельные проходы ничего не портят. Ошибка на одной заявке
логируется и не останавливает проход.
"""

from __future__ import annotations

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.joins.models import ReconcileReport
from src.core.joins.repository import JoinRepository


class LinkReconciler:
    """Заполняет недостающие trip_id / offer_id у заявок."""

    def __init__(self, joins: JoinRepository) -> None:
        self._joins = joins

    async def reconcile_join(self, join_id: int) -> ReconcileReport:
        """Точечная сверка одной заявки (вызывается сразу после создания)."""
        report = ReconcileReport()
        await self._reconcile_row(join_id, report)
        return report

    async def reconcile_all(self) -> ReconcileReport:
        """Полный проход по всем заявкам с одной известной стороной."""
        report = ReconcileReport()
        for join_id in await self._joins.list_unlinked_ids():
            await self._reconcile_row(join_id, report)

        await log_info(
            f"Сверка связей: просмотрено {report.scanned}, "
            f"trip_id={report.trip_links}, offer_id={report.offer_links}, ошибок={report.failed}",
            type_msg=TypeMsg.INFO,
        )
        return report

    async def _reconcile_row(self, join_id: int, report: ReconcileReport) -> None:
        report.scanned += 1
        try:
            trip_id = await self._joins.find_trip_for_offer_join(join_id)
            if trip_id is not None and await self._joins.fill_trip_id(join_id, trip_id):
                report.trip_links += 1
                await log_info(f"Заявка {join_id}: привязана поездка {trip_id}", type_msg=TypeMsg.DEBUG)

            offer_id = await self._joins.find_offer_for_trip_join(join_id)
            if offer_id is not None and await self._joins.fill_offer_id(join_id, offer_id):
                report.offer_links += 1
                await log_info(f"Заявка {join_id}: привязано предложение {offer_id}", type_msg=TypeMsg.DEBUG)
        except Exception as e:
            report.failed += 1
            await log_error(f"Ошибка сверки заявки {join_id}: {e}", exc_info=True)
