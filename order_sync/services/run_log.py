"""
Per-run JSON audit trail.

Layout under the log directory:
    <run-id>-fetched-orders.json                      manifest
    <run-id>-sync-summary.json                        run totals
    orders/<run-id>-<shopify-id>-<status>.json        one file per order
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"


def new_run_id(now: Optional[datetime] = None) -> str:
    """UTC ISO timestamp with ':' and '.' replaced, e.g. 2024-01-10T09-00-00-000Z"""
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def order_snapshot(order: Mapping[str, Any]) -> Dict[str, Any]:
    """Key source fields kept with every per-order record"""
    return {
        "created_at": order.get("created_at"),
        "email": order.get("email"),
        "line_items_count": len(order.get("line_items") or []),
        "total": order.get("current_total_price"),
        "tags": order.get("tags"),
    }


@dataclass
class OrderOutcome:
    """Result of processing one source order"""
    run_id: str
    shopify_id: str
    name: Optional[str]
    status: str
    snapshot: Dict[str, Any] = field(default_factory=dict)
    order_id: Optional[int] = None
    error: Optional[str] = None
    attempts: int = 0
    retagged: bool = False
    retag_error: Optional[str] = None
    retry: Optional[Dict[str, Any]] = None  # RetryStats.to_dict() of the import step

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "runId": self.run_id,
            "shopifyId": self.shopify_id,
            "name": self.name,
            "status": self.status,
            "attempts": self.attempts,
        }
        if self.status == STATUS_ERROR:
            record["error"] = self.error
            record["snapshot"] = self.snapshot
        else:
            record["orderId"] = self.order_id
            record["summary"] = self.snapshot
            if self.status == STATUS_SKIPPED:
                record["reason"] = "already_imported"
        record["retagged"] = self.retagged
        record["retagError"] = self.retag_error
        record["retry"] = self.retry
        return record


@dataclass
class SyncRunResult:
    """Totals for one sync cycle"""
    run_id: str
    since: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0
    outcomes: List[OrderOutcome] = field(default_factory=list)

    @property
    def total_orders(self) -> int:
        return len(self.outcomes)

    @property
    def successful_imports(self) -> int:
        return sum(1 for o in self.outcomes if o.status == STATUS_SUCCESS)

    @property
    def failed_imports(self) -> int:
        return sum(1 for o in self.outcomes if o.status == STATUS_ERROR)

    @property
    def skipped_orders(self) -> int:
        return sum(1 for o in self.outcomes if o.status == STATUS_SKIPPED)

    @property
    def errors(self) -> List[str]:
        return [
            f"Failed to import order {o.name} ({o.shopify_id}): {o.error}"
            for o in self.outcomes if o.status == STATUS_ERROR
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "timestamp": self.started_at.isoformat(),
            "since": self.since,
            "totalOrders": self.total_orders,
            "successfulImports": self.successful_imports,
            "failedImports": self.failed_imports,
            "skippedOrders": self.skipped_orders,
            "durationSeconds": round(self.duration_seconds, 1),
            "errors": self.errors,
        }


class RunLogWriter:
    """Writes the JSON files for one run"""

    def __init__(self, log_dir: str, run_id: str):
        self.root = Path(log_dir)
        self.run_id = run_id

    def write_manifest(self, orders: List[Mapping[str, Any]], since: Optional[str] = None) -> Path:
        return self._write(self.root / f"{self.run_id}-fetched-orders.json", {
            "runId": self.run_id,
            "since": since,
            "count": len(orders),
            "orderIds": [o.get("id") for o in orders],
        })

    def write_outcome(self, outcome: OrderOutcome) -> Path:
        path = self.root / "orders" / f"{self.run_id}-{outcome.shopify_id}-{outcome.status}.json"
        return self._write(path, outcome.to_dict())

    def write_summary(self, result: SyncRunResult) -> Path:
        return self._write(self.root / f"{self.run_id}-sync-summary.json", result.to_dict())

    def _write(self, path: Path, data: Dict[str, Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        return path
