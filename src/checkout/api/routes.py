"""FastAPI routes for checkout — order placement and provider redirects."""

from fastapi import APIRouter, Depends, HTTPException, Query
from protean.exceptions import ValidationError

from checkout.api.schemas import (
    PaymentMethodsResponse,
    PaymentOutcomeResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
)
from checkout.cart import Cart
from checkout.orchestrator import CheckoutError, CheckoutOrchestrator, CheckoutSession, CheckoutState
from orders.order.store import OrderNotFoundError, ProteanOrderStore
from payments.gateway.port import Customer
from payments.gateway.settings import PaymentSettings
from shared.config import CheckoutConfig, TrackingConfig
from shared.logging import bind_order_context, clear_context
from tracking.activation import LazyActivationGate
from tracking.composer import EventComposer
from tracking.destination import get_destinations
from tracking.event.model import TrackingProduct

_orchestrator: CheckoutOrchestrator | None = None


def get_orchestrator() -> CheckoutOrchestrator:
    """Process-wide orchestrator built from the environment on first use."""
    global _orchestrator
    if _orchestrator is None:
        tracking = TrackingConfig.from_env()
        checkout = CheckoutConfig.from_env()
        destinations = get_destinations(tracking)
        gate = LazyActivationGate(destinations, timeout=tracking.activation_timeout)
        _orchestrator = CheckoutOrchestrator(
            order_store=ProteanOrderStore(),
            composer=EventComposer(destinations, gate=gate, default_currency=tracking.default_currency),
            gate=gate,
            payment_settings=PaymentSettings.from_env(),
            config=checkout,
        )
    return _orchestrator


def reset_orchestrator() -> None:
    """Drop the cached orchestrator (useful for testing)."""
    global _orchestrator
    _orchestrator = None


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.get("/payment-methods", response_model=PaymentMethodsResponse)
async def list_payment_methods(
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PaymentMethodsResponse:
    return PaymentMethodsResponse(methods=orchestrator.available_methods())


@checkout_router.post("/orders", response_model=PlaceOrderResponse)
async def place_order(
    body: PlaceOrderRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PlaceOrderResponse:
    """Place an order from the submitted cart.

    Cash on delivery completes immediately. Online methods return the
    provider's ``payment_url`` the browser must be sent to; a refused
    gateway session comes back as ``success: false`` with the error.
    """
    currency = orchestrator.config.currency
    cart = Cart(
        items=[
            TrackingProduct(
                id=line.product_id,
                name=line.name,
                category=line.category,
                brand=line.brand,
                unit_price=line.unit_price,
                quantity=line.quantity,
                currency=currency,
            )
            for line in body.items
        ]
    )
    customer = Customer(**body.customer.model_dump())

    try:
        session = await orchestrator.place_order(cart, customer, body.payment_method)
    except CheckoutError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return PlaceOrderResponse(
        success=session.error is None,
        state=session.state.value,
        order_id=session.order_id,
        payment_url=session.payment_url,
        error=session.error,
    )


# ---------------------------------------------------------------------------
# Payment Redirect Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])

# bKash reports every outcome on the single callback URL through ``status``
_BKASH_FAILURE_STATUSES = {"failure", "failed"}
_BKASH_CANCEL_STATUSES = {"cancel", "cancelled"}


async def _outcome(orchestrator: CheckoutOrchestrator, session: CheckoutSession) -> PaymentOutcomeResponse:
    order = await orchestrator.order_store.get(session.order_id)
    return PaymentOutcomeResponse(
        order_id=session.order_id,
        state=session.state.value,
        status=order.status,
        payment_status=order.payment_status,
        error=session.error,
    )


async def _finalize(orchestrator: CheckoutOrchestrator, order_id: str, target: CheckoutState, transaction_id=None):
    bind_order_context(order_id, callback=target.value)
    try:
        if target is CheckoutState.PAID:
            session = await orchestrator.handle_success(order_id, transaction_id)
        elif target is CheckoutState.CANCELLED:
            session = await orchestrator.handle_cancel(order_id)
        else:
            session = await orchestrator.handle_failure(order_id)
        return await _outcome(orchestrator, session)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=409, detail=exc.messages) from exc
    finally:
        clear_context()


@payment_router.api_route("/success", methods=["GET", "POST"], response_model=PaymentOutcomeResponse)
async def payment_success(
    order_id: str = Query(...),
    status: str | None = Query(default=None),
    payment_id: str | None = Query(default=None, alias="paymentID"),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PaymentOutcomeResponse:
    """Provider success redirect; also the single bKash callback."""
    outcome = (status or "").lower()
    if outcome in _BKASH_FAILURE_STATUSES:
        return await _finalize(orchestrator, order_id, CheckoutState.FAILED)
    if outcome in _BKASH_CANCEL_STATUSES:
        return await _finalize(orchestrator, order_id, CheckoutState.CANCELLED)
    return await _finalize(orchestrator, order_id, CheckoutState.PAID, payment_id)


@payment_router.api_route("/fail", methods=["GET", "POST"], response_model=PaymentOutcomeResponse)
async def payment_fail(
    order_id: str = Query(...),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PaymentOutcomeResponse:
    return await _finalize(orchestrator, order_id, CheckoutState.FAILED)


@payment_router.api_route("/cancel", methods=["GET", "POST"], response_model=PaymentOutcomeResponse)
async def payment_cancel(
    order_id: str = Query(...),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> PaymentOutcomeResponse:
    return await _finalize(orchestrator, order_id, CheckoutState.CANCELLED)
