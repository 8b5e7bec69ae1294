"""Checkout API package."""

from checkout.api.routes import checkout_router, payment_router

__all__ = ["checkout_router", "payment_router"]
