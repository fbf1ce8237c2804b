"""
Order fulfillment state machine.

    PENDING -> ACCEPTED -> PREPARING -> READY -> [OUT_FOR_DELIVERY ->] DELIVERED

CANCELLED and REJECTED can be reached from every non-terminal state.
DELIVERED, CANCELLED and REJECTED are terminal. OUT_FOR_DELIVERY only
exists for delivery orders.

Customer-facing cancellation is narrower than the table: see
CANCELLABLE_STATUSES.
"""

from order_lifecycle.shared.exceptions import InvalidTransitionError
from order_lifecycle.shared.models import OrderStatus, OrderType

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REJECTED}
)

# Statuses from which cancel() may run
CANCELLABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.ACCEPTED}
)

_ABORT = {OrderStatus.CANCELLED, OrderStatus.REJECTED}

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, *_ABORT}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PREPARING, *_ABORT}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, *_ABORT}),
    OrderStatus.READY: frozenset(
        {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, *_ABORT}
    ),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, *_ABORT}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}


def allowed_transitions(
    current: OrderStatus, order_type: OrderType | None = None
) -> frozenset[OrderStatus]:
    """Statuses reachable in one step from ``current`` for this order type."""
    allowed = TRANSITIONS[current]
    if order_type is not None and order_type != OrderType.DELIVERY:
        allowed = allowed - {OrderStatus.OUT_FOR_DELIVERY}
    return allowed


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def check_transition(
    current: OrderStatus,
    requested: OrderStatus,
    order_type: OrderType | None = None,
) -> None:
    """
    Validate one status change.

    Raises:
        InvalidTransitionError: If ``requested`` is not reachable from
            ``current`` in one step
    """
    if is_terminal(current):
        raise InvalidTransitionError(
            current.value, requested.value, f"{current.value} is a terminal status"
        )

    if requested not in allowed_transitions(current, order_type):
        reason = None
        if (
            requested == OrderStatus.OUT_FOR_DELIVERY
            and order_type is not None
            and order_type != OrderType.DELIVERY
        ):
            reason = f"{order_type.value} orders are not delivered"
        raise InvalidTransitionError(current.value, requested.value, reason)


def check_cancellable(current: OrderStatus) -> None:
    """
    Validate that an order may still be cancelled.

    Raises:
        InvalidTransitionError: Once preparation has started
    """
    if current not in CANCELLABLE_STATUSES:
        raise InvalidTransitionError(
            current.value,
            OrderStatus.CANCELLED.value,
            "Orders can only be cancelled while PENDING or ACCEPTED",
        )
