"""Per-source record adapters for the inventory API feeds."""

from typing import Dict

from ledger.types import (
    SOURCE_GOODS_FLOW,
    SOURCE_MOVES,
    SOURCE_OUTCOMES,
    SOURCE_POSTINGS,
    SOURCE_SALES,
)

from .base import RecordAdapter
from .goods_flow import GoodsFlowAdapter
from .moves import MovesAdapter
from .outcomes import OutcomesAdapter
from .postings import PostingsAdapter
from .sales import SalesAdapter

ADAPTERS: Dict[str, RecordAdapter] = {
    SOURCE_POSTINGS: PostingsAdapter(),
    SOURCE_MOVES: MovesAdapter(),
    SOURCE_OUTCOMES: OutcomesAdapter(),
    SOURCE_SALES: SalesAdapter(),
    SOURCE_GOODS_FLOW: GoodsFlowAdapter(),
}

__all__ = [
    "ADAPTERS",
    "GoodsFlowAdapter",
    "MovesAdapter",
    "OutcomesAdapter",
    "PostingsAdapter",
    "RecordAdapter",
    "SalesAdapter",
]
