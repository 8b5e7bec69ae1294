"""Storefront checkout FastAPI application.

Serves order placement and the payment providers' redirect targets. Requests
under ``/checkout`` and ``/payments`` run inside the ``orders`` domain context;
the conversion tracking gate is armed at startup so destinations come up on
the fallback timer even before the first revenue event forces them.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orders.domain import logger, orders

orders.init()

_DOMAIN_PREFIXES = ("/checkout", "/payments")


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = get_orchestrator()
    orchestrator.gate.arm()
    logger.info(
        "Storefront checkout started",
        currency=orchestrator.config.currency,
        payment_methods=[method["id"] for method in orchestrator.available_methods()],
    )

    yield

    reset_orchestrator()
    logger.info("Storefront checkout stopped")


app = FastAPI(
    title="Storefront Checkout API",
    description="Order placement, payment gateway redirects and conversion tracking",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with orders.domain_context():
            return await call_next(request)
    return await call_next(request)


from checkout.api import checkout_router, payment_router  # noqa: E402
from checkout.api.routes import get_orchestrator, reset_orchestrator  # noqa: E402

app.include_router(checkout_router)
app.include_router(payment_router)


@app.get("/health")
async def health():
    orchestrator = get_orchestrator()
    return JSONResponse(
        content={
            "status": "ok",
            "domain": orders.name,
            "tracking": orchestrator.gate.state.value,
            "online_payments": orchestrator.payment_settings.any_online_gateway_enabled,
        }
    )
