"""
Order Sync Service

Runs one sync cycle: fetch orders tagged for import, then for each order
(through a bounded worker queue) map, persist, record the outcome and
retag it in Shopify.

Per-order states:
    FETCHED -> PERSISTED -> DONE      (retag succeeded, failed or disabled)
    FETCHED -> SKIPPED                (already imported, marker strategy)
    FETCHED -> FAILED                 (map/persist failed on every attempt)
"""
import asyncio
import time
from typing import Any, List, Mapping, Optional, Tuple

from order_sync.context import SyncContext
from order_sync.services.order_mapper import map_shopify_order
from order_sync.services.run_log import (
    STATUS_ERROR,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    OrderOutcome,
    RunLogWriter,
    SyncRunResult,
    new_run_id,
    order_snapshot,
)
from order_sync.utils.logger import log
from order_sync.utils.retry import RetryError


def _error_message(error: BaseException) -> str:
    if isinstance(error, RetryError):
        error = error.last_error
    return str(error) or type(error).__name__


class OrderSyncService:
    """Drives fetch -> map -> persist -> retag for tagged Shopify orders"""

    def __init__(self, context: SyncContext):
        self.context = context
        self.settings = context.settings
        self.shopify = context.shopify
        self.store = context.store
        self.retry_policy = context.retry_policy

    async def run_once(self, since: Optional[str] = None) -> SyncRunResult:
        """
        Run a single sync cycle.

        Args:
            since: created_at_min override (defaults to settings.sync_since)

        Returns:
            SyncRunResult with one outcome per fetched order

        Raises:
            ShopifyAPIError / httpx.HTTPError if the order fetch fails;
            nothing is processed in that case
        """
        since = since if since is not None else self.settings.sync_since
        run_id = new_run_id()
        run_log = RunLogWriter(self.settings.log_dir, run_id)
        result = SyncRunResult(run_id=run_id, since=since)
        start = time.time()
        run_logger = log.bind(run_id=run_id)

        orders = await self.shopify.fetch_tagged_orders(self.settings.shopify_import_tag, since)
        run_logger.bind(count=len(orders), since=since).info(f"Fetched {len(orders)} tagged orders")
        run_log.write_manifest(orders, since=since)

        result.outcomes = await self._process_all(run_id, run_log, orders)
        result.duration_seconds = time.time() - start
        run_log.write_summary(result)

        run_logger.bind(
            total_orders=result.total_orders,
            successful_imports=result.successful_imports,
            failed_imports=result.failed_imports,
            skipped_orders=result.skipped_orders,
            seconds=round(result.duration_seconds, 1),
        ).info(
            f"Sync completed: {result.successful_imports} imported, "
            f"{result.failed_imports} failed, {result.skipped_orders} skipped "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    async def _process_all(
        self,
        run_id: str,
        run_log: RunLogWriter,
        orders: List[Mapping[str, Any]]
    ) -> List[OrderOutcome]:
        """Feed orders through sync_concurrency workers; completion order is not preserved"""
        queue: asyncio.Queue = asyncio.Queue()
        for order in orders:
            queue.put_nowait(order)

        outcomes: List[OrderOutcome] = []

        async def worker():
            while True:
                try:
                    order = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcome = await self.process_order(run_id, order)
                outcomes.append(outcome)
                try:
                    run_log.write_outcome(outcome)
                except OSError as e:
                    log.bind(run_id=run_id, shopify_id=outcome.shopify_id).error(f"Could not write order log: {e}")

        width = min(self.settings.sync_concurrency, len(orders)) or 1
        await asyncio.gather(*(worker() for _ in range(width)))
        return outcomes

    async def process_order(self, run_id: str, order: Mapping[str, Any]) -> OrderOutcome:
        """
        Process one order. Never raises: every failure becomes an outcome.
        """
        shopify_id = str(order.get("id"))
        outcome = OrderOutcome(
            run_id=run_id,
            shopify_id=shopify_id,
            name=order.get("name"),
            status=STATUS_SUCCESS,
            snapshot=order_snapshot(order),
        )
        order_logger = log.bind(run_id=run_id, shopify_id=shopify_id, name=outcome.name)

        try:
            (outcome.order_id, already_imported), stats = await self.retry_policy.run(
                self._import_order, order, operation_name=f"import order {shopify_id}"
            )
            outcome.attempts = stats.attempts
            outcome.retry = stats.to_dict()

            if already_imported:
                outcome.status = STATUS_SKIPPED
                order_logger.bind(order_id=outcome.order_id).info("Skipping already imported order")
            else:
                order_logger.bind(order_id=outcome.order_id, attempts=stats.attempts).info("Imported order")

        except Exception as e:
            outcome.status = STATUS_ERROR
            outcome.error = _error_message(e)
            if isinstance(e, RetryError):
                outcome.attempts = e.stats.attempts
                outcome.retry = e.stats.to_dict()
            order_logger.bind(error=outcome.error, attempts=outcome.attempts).error("Failed to import order")
            return outcome

        if self.settings.retag_enabled:
            await self._retag(outcome)

        return outcome

    async def _import_order(self, order: Mapping[str, Any]) -> Tuple[int, bool]:
        """
        Map and persist one order.

        Returns:
            (local order id, True if it was already imported and nothing was written)
        """
        if self.settings.idempotency_strategy == "marker":
            existing_id = self.store.find_imported_order(str(order.get("id")))
            if existing_id is not None:
                return existing_id, True

        mapped = map_shopify_order(order, purchase_from=self.settings.purchase_from)
        return self.store.persist(mapped), False

    async def _retag(self, outcome: OrderOutcome):
        """Best-effort swap of the import tag for the processed tag"""
        try:
            await self.retry_policy.run(
                self.shopify.retag_order,
                outcome.shopify_id,
                self.settings.shopify_import_tag,
                self.settings.shopify_processed_tag,
                operation_name=f"retag order {outcome.shopify_id}",
            )
            outcome.retagged = True
        except Exception as e:
            outcome.retag_error = _error_message(e)
            log.bind(run_id=outcome.run_id, shopify_id=outcome.shopify_id, error=outcome.retag_error).warning(
                "Retag failed; order stays imported"
            )
