"""
Order lifecycle: pricing, numbering, side-effect trackers, the state
machine and the manager that ties them together.
"""

from order_lifecycle.lifecycle.customer_stats import CustomerStatsTracker
from order_lifecycle.lifecycle.inventory import InventoryAdjuster, stock_status
from order_lifecycle.lifecycle.manager import OrderLifecycleManager
from order_lifecycle.lifecycle.order_number import OrderNumberGenerator
from order_lifecycle.lifecycle.pricing import (
    PriceBreakdown,
    PricingCalculator,
    PromoTerms,
    compute_totals,
)
from order_lifecycle.lifecycle.promotions import PromotionUsageTracker
from order_lifecycle.lifecycle.reconciliation import (
    CustomerStatsDrift,
    reconcile_customer_stats,
)
from order_lifecycle.lifecycle.state_machine import (
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    allowed_transitions,
    check_cancellable,
    check_transition,
    is_terminal,
)

__all__ = [
    "OrderLifecycleManager",
    "PricingCalculator",
    "PriceBreakdown",
    "PromoTerms",
    "compute_totals",
    "OrderNumberGenerator",
    "InventoryAdjuster",
    "stock_status",
    "CustomerStatsTracker",
    "PromotionUsageTracker",
    "CustomerStatsDrift",
    "reconcile_customer_stats",
    "TRANSITIONS",
    "TERMINAL_STATUSES",
    "CANCELLABLE_STATUSES",
    "allowed_transitions",
    "check_transition",
    "check_cancellable",
    "is_terminal",
]
