# category_tree/services/report_service.py
from typing import Dict, Any, List, Sequence
from datetime import datetime, timedelta
import pytz
from ..config import Config
from ..models.category import CategoryRecord, ListParams
from ..utils.formatters import EPOCH, to_utc
from ..utils.tree_builder import build_tree, tree_depth
from .store import CategoryStore

RANGES = {
    'week': timedelta(days=7),
    'month': timedelta(days=30),
    'year': timedelta(days=365),
}

class ReportService:
    """Category statistics for the dashboard"""

    def __init__(self, store: CategoryStore):
        self.store = store
        self.tz = pytz.timezone(Config.TIMEZONE)

    async def get_statistics(self, time_range: str = 'month') -> Dict[str, Any]:
        """Statistics over every category in the store"""
        result = await self.store.list(ListParams())
        return self.summarize(result.items, time_range)

    def summarize(self, records: Sequence[CategoryRecord], time_range: str = 'month',
                  recent_limit: int = 5) -> Dict[str, Any]:
        """Compute statistics for the given records"""
        if time_range not in RANGES:
            raise ValueError(f"Unknown time range: {time_range}")
        now = datetime.now(self.tz)
        since = now - RANGES[time_range]

        by_status = {'active': 0, 'inactive': 0, 'archived': 0}
        for record in records:
            by_status[record.status] += 1

        with_products = sum(1 for record in records if record.has_products)
        forest = build_tree(records)
        recent: List[CategoryRecord] = sorted(
            (record for record in records if record.created_at is not None),
            key=lambda record: to_utc(record.created_at) or EPOCH,
            reverse=True,
        )[:recent_limit]

        total = len(records)
        return {
            "period": {
                "range": time_range,
                "start": since.strftime("%Y-%m-%d"),
                "end": now.strftime("%Y-%m-%d")
            },
            "total_categories": total,
            "active_categories": by_status['active'],
            "inactive_categories": by_status['inactive'],
            "archived_categories": by_status['archived'],
            "active_percentage": round(by_status['active'] * 100 / total) if total else 0,
            "root_categories": len(forest),
            "tree_depth": max(tree_depth(forest), 0),
            "with_products": with_products,
            "without_products": total - with_products,
            "total_products": sum(record.product_count or 0 for record in records),
            "total_revenue": sum(record.revenue or 0 for record in records),
            "created_in_range": sum(
                1 for record in records
                if record.created_at is not None and to_utc(record.created_at) >= since
            ),
            "recent_categories": recent,
        }
