"""Checkout orchestrator — sequences order creation, payment and conversion tracking.

State Machine:
    CART_REVIEW → ORDER_CREATED → COMPLETED                 (cash on delivery)
    CART_REVIEW → ORDER_CREATED → PAYMENT_PENDING → PAID    (gateway success callback)
                                  PAYMENT_PENDING → FAILED / CANCELLED
                                                            (gateway fail / cancel callback)

A gateway that refuses to open a session leaves the checkout in
ORDER_CREATED with the error attached; the order stays ``pending/unpaid``
and the shopper can retry, possibly with another method.

Provider redirects only act on online orders whose gateway session was
opened. A redirect naming a cash on delivery order, or an order still
waiting for a retry, is refused with an error and changes nothing.

Purchase is tracked exactly where revenue is certain: on order placement
for cash on delivery, on the success callback for online payments. The
purchase event id is pinned to the order, so a replayed success callback
can never produce a second distinct purchase.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

import httpx
import structlog
from protean.exceptions import ValidationError

from checkout.cart import Cart, products_from_snapshot
from orders.order.order import Order
from orders.order.store import OrderStore
from payments.gateway import get_gateway
from payments.gateway.port import (
    Customer,
    GatewayError,
    PaymentGateway,
    PaymentRequest,
)
from payments.gateway.settings import CASH_ON_DELIVERY, PaymentSettings
from shared.config import CheckoutConfig
from tracking.activation import LazyActivationGate
from tracking.composer import DispatchResult, EventComposer
from tracking.event.model import EventKind, TrackingUser

logger = structlog.get_logger(__name__)


class CheckoutState(Enum):
    CART_REVIEW = "CartReview"
    ORDER_CREATED = "OrderCreated"
    PAYMENT_PENDING = "PaymentPending"
    COMPLETED = "Completed"
    PAID = "Paid"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    CheckoutState.CART_REVIEW: {CheckoutState.ORDER_CREATED},
    CheckoutState.ORDER_CREATED: {CheckoutState.PAYMENT_PENDING, CheckoutState.COMPLETED},
    CheckoutState.PAYMENT_PENDING: {CheckoutState.PAID, CheckoutState.FAILED, CheckoutState.CANCELLED},
    CheckoutState.COMPLETED: set(),  # Terminal
    CheckoutState.PAID: set(),  # Terminal
    CheckoutState.FAILED: set(),  # Terminal
    CheckoutState.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(state for state, targets in _VALID_TRANSITIONS.items() if not targets)


class CheckoutError(Exception):
    """Checkout could not proceed; the message is safe to show to the shopper."""


@dataclass
class CheckoutSession:
    payment_method: str | None = None
    state: CheckoutState = CheckoutState.CART_REVIEW
    order_id: str | None = None
    payment_url: str | None = None
    transaction_id: str | None = None
    error: str | None = None
    failure: GatewayError | None = None
    purchase: DispatchResult | None = None
    history: list[CheckoutState] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def requires_redirect(self) -> bool:
        return self.state is CheckoutState.PAYMENT_PENDING and self.payment_url is not None

    def transition_to(self, target: CheckoutState) -> None:
        if target not in _VALID_TRANSITIONS[self.state]:
            raise ValidationError({"state": [f"Cannot transition from {self.state.value} to {target.value}"]})
        self.history.append(self.state)
        self.state = target


def tracking_user_for(customer: Customer | None = None, order: Order | None = None) -> TrackingUser:
    """Identity bundle for conversion events, from checkout input or a stored order."""
    if customer is not None:
        name, phone, email, city = customer.name, customer.phone, customer.email, customer.city
    else:
        name, phone, email, city = order.customer_name, order.customer_phone, order.customer_email, None

    first_name, _, last_name = (name or "").strip().partition(" ")
    return TrackingUser(
        email=email,
        phone=phone,
        first_name=first_name or None,
        last_name=last_name.strip() or None,
        city=city,
    )


class CheckoutOrchestrator:
    def __init__(
        self,
        order_store: OrderStore,
        composer: EventComposer,
        gate: LazyActivationGate,
        payment_settings: PaymentSettings,
        config: CheckoutConfig | None = None,
        gateway_factory: Callable[..., PaymentGateway | None] = get_gateway,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.order_store = order_store
        self.composer = composer
        self.gate = gate
        self.payment_settings = payment_settings
        self.config = config or CheckoutConfig()
        self.gateway_factory = gateway_factory
        self.http_client = http_client

    # -------------------------------------------------------------------
    # Cart review
    # -------------------------------------------------------------------
    async def begin_checkout(self, cart: Cart, user: TrackingUser | None = None) -> DispatchResult:
        """Track the shopper entering checkout with the current cart."""
        return await self.composer.track(
            EventKind.BEGIN_CHECKOUT,
            cart.items,
            user,
            {"currency": self.config.currency},
        )

    def available_methods(self) -> list[dict]:
        return self.payment_settings.available_methods()

    # -------------------------------------------------------------------
    # Order placement
    # -------------------------------------------------------------------
    def _method_error(self, payment_method: str) -> str | None:
        settings = self.payment_settings.get(payment_method)
        if settings is None:
            return "Unsupported payment gateway"
        if not settings.enabled:
            return f"{settings.display_name} is not enabled"
        return None

    async def place_order(
        self,
        cart: Cart,
        customer: Customer,
        payment_method: str,
        user: TrackingUser | None = None,
    ) -> CheckoutSession:
        """Create the order and either complete it (COD) or open a gateway session."""
        if cart.is_empty:
            raise CheckoutError("Your cart is empty")

        session = CheckoutSession(payment_method=payment_method)
        if (error := self._method_error(payment_method)) is not None:
            logger.warning("Checkout rejected payment method", payment_method=payment_method, error=error)
            session.error = error
            return session

        try:
            order = await self.order_store.create(
                customer_name=customer.name,
                customer_phone=customer.phone,
                customer_email=customer.email,
                shipping_address=customer.address,
                payment_method=payment_method,
                items_data=cart.snapshot(),
                subtotal=cart.subtotal,
                delivery_charge=self.config.delivery_charge,
                currency=self.config.currency,
            )
        except Exception as exc:
            logger.error("Order creation failed", payment_method=payment_method, error=str(exc))
            raise CheckoutError("Failed to place order. Please try again.") from exc

        session.order_id = str(order.id)
        session.transition_to(CheckoutState.ORDER_CREATED)
        logger.info("Order created", order_id=session.order_id, payment_method=payment_method, total=order.total)

        user = user or tracking_user_for(customer=customer)

        if payment_method == CASH_ON_DELIVERY:
            session.purchase = await self._track_purchase(order, user)
            cart.clear()
            session.transition_to(CheckoutState.COMPLETED)
            return session

        await self._initiate_payment(session, order, cart, customer)
        return session

    async def retry_payment(
        self,
        session: CheckoutSession,
        cart: Cart,
        customer: Customer,
        payment_method: str | None = None,
    ) -> CheckoutSession:
        """Retry opening a gateway session for an order whose first attempt was refused."""
        if session.state is not CheckoutState.ORDER_CREATED or session.order_id is None:
            raise ValidationError({"state": [f"Cannot retry payment from {session.state.value}"]})

        payment_method = payment_method or session.payment_method
        if payment_method == CASH_ON_DELIVERY:
            raise CheckoutError("Cash on delivery cannot be chosen for an order awaiting online payment")
        if (error := self._method_error(payment_method)) is not None:
            session.error = error
            return session

        session.payment_method = payment_method
        order = await self.order_store.get(session.order_id)
        await self._initiate_payment(session, order, cart, customer)
        return session

    async def _initiate_payment(self, session: CheckoutSession, order: Order, cart: Cart, customer: Customer) -> None:
        settings = self.payment_settings.get(session.payment_method)
        gateway = self.gateway_factory(settings, client=self.http_client, timeout=self.config.gateway_timeout)
        if gateway is None:
            session.error = "Unsupported payment gateway"
            return

        # Tracking must be live before the shopper leaves the site
        await self.gate.ensure_ready()

        request = PaymentRequest(
            amount=Decimal(str(order.total)),
            currency=order.currency,
            order_id=session.order_id,
            customer=customer,
            **self.config.callback_urls(session.order_id),
        )
        response = await gateway.initiate(request)

        if not response.success:
            session.error = response.error
            session.failure = response.failure
            logger.warning(
                "Payment initiation failed",
                order_id=session.order_id,
                provider=session.payment_method,
                error=response.error,
            )
            return

        # SSLCOMMERZ sessions are keyed by tran_id, which is the order id
        await self.order_store.record_transaction(session.order_id, response.transaction_id or session.order_id)

        # Cleared before redirecting: back-navigation must not resubmit the order
        cart.clear()
        session.error = None
        session.failure = None
        session.payment_url = response.payment_url
        session.transaction_id = response.transaction_id
        session.transition_to(CheckoutState.PAYMENT_PENDING)
        logger.info("Payment session opened", order_id=session.order_id, provider=session.payment_method)

    # -------------------------------------------------------------------
    # Provider redirects
    # -------------------------------------------------------------------
    def _refuse_callback(self, order: Order, outcome: CheckoutState) -> CheckoutSession | None:
        """Session for a redirect the order cannot take, or None when it can.

        Redirects only finalize online orders whose gateway session was opened.
        Cash on delivery checkouts ended at placement, and an order whose
        gateway refused the session is still waiting for a retry.
        """
        order_id = str(order.id)
        if order.payment_method == CASH_ON_DELIVERY:
            logger.warning(
                "Payment redirect for a cash on delivery order refused", order_id=order_id, outcome=outcome.value
            )
            return CheckoutSession(
                payment_method=order.payment_method,
                state=CheckoutState.COMPLETED,
                order_id=order_id,
                error="Cash on delivery orders are not paid online",
            )
        if not order.has_payment_session:
            logger.warning(
                "Payment redirect without a payment session refused", order_id=order_id, outcome=outcome.value
            )
            return CheckoutSession(
                payment_method=order.payment_method,
                state=CheckoutState.ORDER_CREATED,
                order_id=order_id,
                error="No payment session was opened for this order",
            )
        return None

    async def handle_success(self, order_id: str, transaction_id: str | None = None) -> CheckoutSession:
        """Success redirect: mark the order paid and track the purchase once."""
        order = await self.order_store.get(order_id)
        if (refused := self._refuse_callback(order, CheckoutState.PAID)) is not None:
            return refused

        session = CheckoutSession(
            payment_method=order.payment_method,
            state=CheckoutState.PAYMENT_PENDING,
            order_id=order_id,
            transaction_id=transaction_id or order.transaction_id,
        )

        if order.is_paid:
            logger.info("Success callback replayed for a paid order", order_id=order_id)
            session.transition_to(CheckoutState.PAID)
            return session
        if order.is_cancelled:
            logger.warning("Success callback for a cancelled order", order_id=order_id)
            session.error = "Order was already cancelled"
            session.transition_to(CheckoutState.CANCELLED)
            return session

        order = await self.order_store.mark_paid(order_id, transaction_id)
        session.purchase = await self._track_purchase(order, tracking_user_for(order=order))
        session.transition_to(CheckoutState.PAID)
        logger.info("Order paid", order_id=order_id, provider=order.payment_method)
        return session

    async def handle_failure(self, order_id: str) -> CheckoutSession:
        return await self._close_unpaid(order_id, CheckoutState.FAILED)

    async def handle_cancel(self, order_id: str) -> CheckoutSession:
        return await self._close_unpaid(order_id, CheckoutState.CANCELLED)

    async def _close_unpaid(self, order_id: str, target: CheckoutState) -> CheckoutSession:
        order = await self.order_store.get(order_id)
        if (refused := self._refuse_callback(order, target)) is not None:
            return refused

        session = CheckoutSession(
            payment_method=order.payment_method,
            state=CheckoutState.PAYMENT_PENDING,
            order_id=order_id,
        )

        if order.is_paid:
            logger.warning("Failure callback for a paid order ignored", order_id=order_id, outcome=target.value)
            session.transition_to(CheckoutState.PAID)
            return session

        if not order.is_cancelled:
            await self.order_store.mark_payment_failed(order_id)
        session.transition_to(target)
        logger.info("Payment not completed", order_id=order_id, outcome=target.value)
        return session

    # -------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------
    async def _track_purchase(self, order: Order, user: TrackingUser | None) -> DispatchResult:
        order_id = str(order.id)
        return await self.composer.track(
            EventKind.PURCHASE,
            products_from_snapshot(order.line_items),
            user,
            {
                "currency": order.currency,
                "value": Decimal(str(order.total)),
                "event_id": f"purchase-{order_id}",
                "transaction_id": order_id,
                "shipping": order.delivery_charge,
                "payment_type": order.payment_method,
            },
        )
