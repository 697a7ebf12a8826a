# queue_optimizer/analysis/__init__.py
from .models import Node, QueueItem, FleetSnapshot, QueueAnalysisReport, NO_CAPACITY
from .inventory import InventoryProvider, BuildHistory, StaticInventory, StaticBuildHistory
from .analyzer import QueueAnalyzer, analyze_snapshot
from .report import (
    render_report,
    render_summary,
    render_recommendations,
    render_throttles,
    render_scaling_actions,
)

__all__ = [
    'Node',
    'QueueItem',
    'FleetSnapshot',
    'QueueAnalysisReport',
    'NO_CAPACITY',
    'InventoryProvider',
    'BuildHistory',
    'StaticInventory',
    'StaticBuildHistory',
    'QueueAnalyzer',
    'analyze_snapshot',
    'render_report',
    'render_summary',
    'render_recommendations',
    'render_throttles',
    'render_scaling_actions',
]
