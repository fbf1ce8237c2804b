"""
Order lifecycle manager.

Orchestrates pricing, order numbering, inventory, customer statistics and
promotion usage, and owns the fulfillment state machine. Every write
operation runs in exactly one store transaction: all of its side effects
commit together or none do.

Usage:
    manager = OrderLifecycleManager(OrderStore(session_maker))

    order = await manager.create(request)
    order = await manager.transition_status(order.id, OrderStatus.ACCEPTED)
    order = await manager.cancel(order.id, reason="Customer changed mind")
"""

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from order_lifecycle.config.models import LifecycleSettings
from order_lifecycle.db.models import Order, OrderItem
from order_lifecycle.db.store import OrderStore, UnitOfWork
from order_lifecycle.lifecycle.customer_stats import CustomerStatsTracker
from order_lifecycle.lifecycle.inventory import InventoryAdjuster
from order_lifecycle.lifecycle.order_number import OrderNumberGenerator
from order_lifecycle.lifecycle.pricing import PricingCalculator
from order_lifecycle.lifecycle.promotions import PromotionUsageTracker
from order_lifecycle.lifecycle.state_machine import (
    check_cancellable,
    check_transition,
)
from order_lifecycle.shared.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from order_lifecycle.shared.logging_utils import get_structured_logger
from order_lifecycle.shared.metrics import (
    order_total_amount,
    order_transitions_total,
    orders_cancelled_total,
    orders_created_total,
    promo_codes_applied_total,
    record_failure,
)
from order_lifecycle.shared.models import (
    ACTOR_SYSTEM,
    CreateOrderRequest,
    Customization,
    OrderFilters,
    OrderItemRequest,
    OrderStatus,
    OrderType,
    OrderView,
    PaginatedOrders,
    Pagination,
    PaymentStatus,
)

logger = logging.getLogger(__name__)
events = get_structured_logger(f"{__name__}.events")


def _validate(model: type[BaseModel], data: Any) -> Any:
    """Coerce raw input into ``model``, reporting failures as ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, f"Invalid {model.__name__}") from e


def _coerce_enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid {field}",
            field_errors=[{"field": field, "message": f"unknown value {value!r}"}],
        ) from e


class OrderLifecycleManager:
    """
    Entry point for every order lifecycle operation.

    Attributes:
        store: Transactional order store
        settings: Lifecycle settings (delivery estimate, numbering, paging)
        calculator: Pricing calculator
        numbers: Order number generator
        clock: Returns the current time (timezone-aware, UTC)
    """

    def __init__(
        self,
        store: OrderStore,
        settings: LifecycleSettings | None = None,
        calculator: PricingCalculator | None = None,
        numbers: OrderNumberGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.settings = settings or LifecycleSettings()
        self.calculator = calculator or PricingCalculator(self.settings.money_places)
        self.numbers = numbers or OrderNumberGenerator(
            self.settings.order_number_prefix, self.settings.sequence_digits
        )
        self.clock = clock or (lambda: datetime.now(UTC))

    # ================================
    # CREATE
    # ================================

    async def create(self, request: CreateOrderRequest | dict) -> OrderView:
        """
        Create an order in PENDING status.

        In one transaction this inserts the order, its line item snapshots
        and the first history entry, counts promo usage (only when the
        promo actually discounted the order), adds the order to the
        customer's statistics and decrements inventory.

        Raises:
            ValidationError: Malformed request or non-positive total
            NotFoundError: Unknown restaurant, customer, menu item,
                delivery address or promo code
        """
        try:
            request = _validate(CreateOrderRequest, request)
            now = self.clock()

            async with self.store.transaction() as uow:
                order = await self._create_in(uow, request, now)
                view = OrderView.model_validate(order)
        except Exception as e:
            record_failure("create", e)
            raise

        orders_created_total.labels(order_type=view.type.value).inc()
        order_total_amount.observe(float(view.total_amount))
        if view.discount_amount > 0:
            promo_codes_applied_total.inc()

        self._log_event(
            view.order_number,
            "Order created",
            order_id=view.id,
            order_type=view.type.value,
            total_amount=view.total_amount,
            discount_amount=view.discount_amount,
        )
        return view

    async def _create_in(
        self, uow: UnitOfWork, request: CreateOrderRequest, now: datetime
    ) -> Order:
        tax_rate = await uow.restaurants.get_tax_rate(request.restaurant_id)
        service_fee = await uow.restaurants.get_service_fee(request.restaurant_id)

        if await uow.customers.find_by_id(request.customer_id) is None:
            raise NotFoundError("Customer", request.customer_id)

        menu_items = await uow.menu_items.find_many(
            [item.menu_item_id for item in request.items]
        )
        for item in request.items:
            if item.menu_item_id not in menu_items:
                raise NotFoundError("MenuItem", item.menu_item_id)

        delivery_fee = await self._delivery_fee(uow, request)

        promotions = PromotionUsageTracker(uow, self.calculator)
        discount = None
        if request.promo_code_id:
            discount = await promotions.apply_if_valid(
                request.promo_code_id, self.calculator.subtotal(request.items), now
            )

        pricing = self.calculator.compute(
            request.items,
            tax_rate=tax_rate,
            service_fee=service_fee,
            delivery_fee=delivery_fee,
            tip_amount=request.tip_amount,
            discount_amount=discount,
        )
        if pricing.total_amount <= 0:
            raise ValidationError(
                "Order total must be positive",
                field_errors=[
                    {"field": "total_amount", "message": str(pricing.total_amount)}
                ],
            )
        promo_applied = pricing.discount_amount > 0

        estimated_delivery_time = None
        if request.type == OrderType.DELIVERY:
            estimated_delivery_time = now + timedelta(
                minutes=self.settings.estimated_delivery_minutes
            )

        order = Order(
            order_number=await self.numbers.next_number(uow, now),
            type=request.type,
            status=OrderStatus.PENDING,
            customer_id=request.customer_id,
            restaurant_id=request.restaurant_id,
            payment_method=request.payment_method,
            payment_status=PaymentStatus.PENDING,
            **pricing.as_dict(),
            table_number=request.table_number,
            pickup_time=request.pickup_time,
            delivery_address_id=request.delivery_address_id,
            estimated_delivery_time=estimated_delivery_time,
            special_instructions=request.special_instructions,
            promo_code_id=request.promo_code_id if promo_applied else None,
            created_at=now,
            updated_at=now,
        )
        await uow.orders.insert(order)

        await uow.order_items.insert_many(
            order.id,
            [
                OrderItem(
                    menu_item_id=item.menu_item_id,
                    name=item.name,
                    price=item.price,
                    quantity=item.quantity,
                    customizations=[
                        c.model_dump(mode="json") for c in item.customizations
                    ],
                    special_instructions=item.special_instructions,
                )
                for item in request.items
            ],
        )
        await uow.status_history.insert(
            order.id,
            OrderStatus.PENDING,
            "Order created",
            ACTOR_SYSTEM,
            created_at=now,
        )

        if promo_applied:
            await promotions.record_usage(request.promo_code_id)
        await CustomerStatsTracker(uow).record_order_placed(
            request.customer_id, pricing.total_amount
        )
        await InventoryAdjuster(uow).decrement_items(request.items)

        return await uow.orders.get(order.id, hydrate=True)

    async def _delivery_fee(self, uow: UnitOfWork, request: CreateOrderRequest) -> Decimal:
        """Fee of the active zone covering the delivery address; zero otherwise."""
        if request.type != OrderType.DELIVERY:
            return Decimal("0")

        address = await uow.addresses.find_by_id(request.delivery_address_id)
        if address is None:
            raise NotFoundError("Address", request.delivery_address_id)

        zone = await uow.delivery_zones.find_matching_zone(
            request.restaurant_id, address.zip_code
        )
        if zone is None:
            logger.info(
                f"No delivery zone of {request.restaurant_id} covers {address.zip_code}"
            )
            return Decimal("0")
        return Decimal(zone.delivery_fee)

    # ================================
    # STATUS CHANGES
    # ================================

    async def transition_status(
        self,
        order_id: str,
        new_status: OrderStatus | str,
        note: str | None = None,
        actor: str = ACTOR_SYSTEM,
    ) -> OrderView:
        """
        Move an order one step through the state machine.

        Only the status (plus actual_delivery_time on DELIVERED) changes and
        one history entry is appended. A request for CANCELLED runs cancel(),
        so cancellation always applies its window and reversals.

        Raises:
            NotFoundError: Unknown order
            InvalidTransitionError: Not reachable from the current status
        """
        new_status = _coerce_enum(OrderStatus, new_status, "status")
        if new_status == OrderStatus.CANCELLED:
            return await self.cancel(order_id, note, actor)

        try:
            now = self.clock()
            async with self.store.transaction() as uow:
                order = await uow.orders.get(order_id, for_update=True)
                previous = order.status
                check_transition(previous, new_status, order.type)

                values: dict[str, Any] = {"status": new_status, "updated_at": now}
                if new_status == OrderStatus.DELIVERED:
                    values["actual_delivery_time"] = now
                await uow.orders.update(order, **values)
                await uow.status_history.insert(
                    order.id, new_status, note, actor, created_at=now
                )

                view = OrderView.model_validate(
                    await uow.orders.get(order.id, hydrate=True)
                )
        except Exception as e:
            record_failure("transition_status", e)
            raise

        order_transitions_total.labels(
            from_status=previous.value, to_status=new_status.value
        ).inc()
        self._log_event(
            view.order_number,
            "Order status changed",
            order_id=view.id,
            from_status=previous.value,
            to_status=new_status.value,
            actor=actor,
        )
        return view

    async def cancel(
        self,
        order_id: str,
        reason: str | None = None,
        actor: str = ACTOR_SYSTEM,
    ) -> OrderView:
        """
        Cancel an order that is still PENDING or ACCEPTED.

        Reverses creation in one transaction: inventory is restored, the
        order leaves the customer's statistics, and a completed payment is
        marked REFUNDED. Promo usage is not given back.

        Raises:
            NotFoundError: Unknown order
            InvalidTransitionError: Order is past the cancellable window
        """
        try:
            now = self.clock()
            async with self.store.transaction() as uow:
                order = await uow.orders.get(order_id, for_update=True)
                previous = order.status
                check_cancellable(previous)

                values: dict[str, Any] = {
                    "status": OrderStatus.CANCELLED,
                    "updated_at": now,
                }
                if order.payment_status == PaymentStatus.COMPLETED:
                    values["payment_status"] = PaymentStatus.REFUNDED
                await uow.orders.update(order, **values)

                items = await uow.order_items.find_by_order(order.id)
                await InventoryAdjuster(uow).restore_items(items)
                await CustomerStatsTracker(uow).record_order_cancelled(
                    order.customer_id, Decimal(order.total_amount)
                )
                await uow.status_history.insert(
                    order.id,
                    OrderStatus.CANCELLED,
                    reason or "Order cancelled",
                    actor,
                    created_at=now,
                )

                view = OrderView.model_validate(
                    await uow.orders.get(order.id, hydrate=True)
                )
        except Exception as e:
            record_failure("cancel", e)
            raise

        orders_cancelled_total.inc()
        order_transitions_total.labels(
            from_status=previous.value, to_status=OrderStatus.CANCELLED.value
        ).inc()
        self._log_event(
            view.order_number,
            "Order cancelled",
            order_id=view.id,
            from_status=previous.value,
            reason=reason,
            actor=actor,
            payment_status=view.payment_status.value,
        )
        return view

    async def update_payment_status(
        self,
        order_id: str,
        payment_status: PaymentStatus | str,
        payment_reference: str | None = None,
        actor: str = ACTOR_SYSTEM,
    ) -> OrderView:
        """
        Record a payment outcome reported by a payment gateway.

        A COMPLETED payment on a PENDING order also accepts the order.
        REFUNDED is only accepted for completed payments, and a refunded
        payment no longer changes. Cancelled and rejected orders cannot
        take a completed payment.

        Raises:
            NotFoundError: Unknown order
            InvalidTransitionError: Illegal payment status change
        """
        payment_status = _coerce_enum(PaymentStatus, payment_status, "payment_status")
        accepted = False

        try:
            now = self.clock()
            async with self.store.transaction() as uow:
                order = await uow.orders.get(order_id, for_update=True)
                current = order.payment_status

                if current == PaymentStatus.REFUNDED:
                    raise InvalidTransitionError(
                        current.value, payment_status.value, "Refunded payments are final"
                    )
                if (
                    payment_status == PaymentStatus.REFUNDED
                    and current != PaymentStatus.COMPLETED
                ):
                    raise InvalidTransitionError(
                        current.value,
                        payment_status.value,
                        "Only completed payments can be refunded",
                    )
                if payment_status == PaymentStatus.COMPLETED and order.status in (
                    OrderStatus.CANCELLED,
                    OrderStatus.REJECTED,
                ):
                    raise InvalidTransitionError(
                        current.value,
                        payment_status.value,
                        f"Order is {order.status.value}",
                    )

                values: dict[str, Any] = {
                    "payment_status": payment_status,
                    "updated_at": now,
                }
                if payment_reference:
                    values["payment_reference"] = payment_reference

                if (
                    payment_status == PaymentStatus.COMPLETED
                    and order.status == OrderStatus.PENDING
                ):
                    check_transition(order.status, OrderStatus.ACCEPTED, order.type)
                    values["status"] = OrderStatus.ACCEPTED
                    accepted = True

                await uow.orders.update(order, **values)
                if accepted:
                    await uow.status_history.insert(
                        order.id,
                        OrderStatus.ACCEPTED,
                        "Payment received successfully",
                        actor,
                        created_at=now,
                    )

                view = OrderView.model_validate(
                    await uow.orders.get(order.id, hydrate=True)
                )
        except Exception as e:
            record_failure("update_payment_status", e)
            raise

        if accepted:
            order_transitions_total.labels(
                from_status=OrderStatus.PENDING.value,
                to_status=OrderStatus.ACCEPTED.value,
            ).inc()
        self._log_event(
            view.order_number,
            "Payment status updated",
            order_id=view.id,
            from_payment_status=current.value,
            payment_status=payment_status.value,
            order_status=view.status.value,
        )
        return view

    # ================================
    # READS
    # ================================

    async def get(self, order_id: str) -> OrderView:
        """
        Fully hydrated order with its status history newest first.

        Raises:
            NotFoundError: Unknown order
        """
        async with self.store.read() as uow:
            order = await uow.orders.get(order_id, hydrate=True)
            view = OrderView.model_validate(order)
        return view.model_copy(
            update={"status_history": list(reversed(view.status_history))}
        )

    async def query(
        self,
        filters: OrderFilters | dict,
        page: int = 1,
        page_size: int | None = None,
    ) -> PaginatedOrders:
        """
        Page through a restaurant's orders, newest first.

        Raises:
            ValidationError: Bad filters, page < 1, or page size outside
                1..max_page_size
        """
        filters = _validate(OrderFilters, filters)
        page_size = page_size or self.settings.default_page_size

        field_errors = []
        if page < 1:
            field_errors.append({"field": "page", "message": "must be >= 1"})
        if not 1 <= page_size <= self.settings.max_page_size:
            field_errors.append(
                {
                    "field": "page_size",
                    "message": f"must be between 1 and {self.settings.max_page_size}",
                }
            )
        if field_errors:
            raise ValidationError("Invalid pagination", field_errors=field_errors)

        async with self.store.read() as uow:
            total = await uow.orders.count(filters)
            orders = await uow.orders.find_many(
                filters, offset=(page - 1) * page_size, limit=page_size
            )
            data = [OrderView.model_validate(order) for order in orders]

        return PaginatedOrders(
            data=data,
            pagination=Pagination(
                total=total,
                page=page,
                page_size=page_size,
                total_pages=math.ceil(total / page_size),
            ),
        )

    # ================================
    # REORDER
    # ================================

    async def reorder(
        self,
        order_id: str,
        actor: str = ACTOR_SYSTEM,
        pickup_time: datetime | None = None,
    ) -> OrderView:
        """
        Place a new order with the line items of an existing one.

        The new order is priced with the restaurant's current configuration
        and goes through create(): fresh order number, no promo, no tip.

        Raises:
            NotFoundError: Unknown order (or anything create() raises)
        """
        async with self.store.read() as uow:
            source = await uow.orders.get(order_id, hydrate=True)
            source_number = source.order_number
            items = [
                OrderItemRequest(
                    menu_item_id=item.menu_item_id,
                    name=item.name,
                    price=item.price,
                    quantity=item.quantity,
                    customizations=[
                        Customization.model_validate(c) for c in item.customizations
                    ],
                    special_instructions=item.special_instructions,
                )
                for item in source.order_items
            ]
            request = CreateOrderRequest(
                type=source.type,
                customer_id=source.customer_id,
                restaurant_id=source.restaurant_id,
                items=items,
                table_number=source.table_number,
                pickup_time=pickup_time or source.pickup_time,
                delivery_address_id=source.delivery_address_id,
                payment_method=source.payment_method,
                special_instructions=source.special_instructions,
            )

        logger.info(f"Reordering {source_number} for {actor}")
        return await self.create(request)

    def _log_event(self, order_number: str, message: str, **context) -> None:
        events.set_correlation_id(order_number)
        try:
            events.info(message, **context)
        finally:
            events.clear_correlation_id()
