"""Reference HTTP surface: the LiqPay server callback and merchant operations."""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import UNSUBSCRIBE_RATE_LIMIT, limiter, verify_api_key
from .connectors.base import OrderRef, TransactionStatus
from .connectors.liqpay import PROVIDER_NAME, LiqPayConfig, LiqPayConnector
from .database import TransactionRepository, close_db, get_db, init_db
from .errors import CallbackError, TransactionNotFoundError
from .services import TransactionService

logger = logging.getLogger(__name__)

_connector: Optional[LiqPayConnector] = None


def get_connector() -> LiqPayConnector:
    """Return the process-wide connector, configured from LIQPAY_* variables."""
    global _connector
    if _connector is None:
        _connector = LiqPayConnector(LiqPayConfig.from_env())
    return _connector


def ack_rejected_callbacks() -> bool:
    """Whether rejected callbacks still get a 200 so LiqPay stops retrying them."""
    return os.getenv("LIQPAY_ACK_REJECTED", "true").strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db(create_tables=os.getenv("DB_CREATE_TABLES", "false").lower() == "true")
    yield
    if _connector is not None:
        await _connector.aclose()
    await close_db()


app = FastAPI(title="LiqPay Payments - Reference API", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


class UnsubscribeBody(BaseModel):
    order_type: str
    order_id: str


@app.get("/health")
async def health(connector: LiqPayConnector = Depends(get_connector)):
    return connector.health_check()


@app.post("/webhooks/liqpay")
async def liqpay_webhook(
    request: Request,
    connector: LiqPayConnector = Depends(get_connector),
    db: AsyncSession = Depends(get_db),
):
    form = await request.form()
    try:
        result = await connector.callback(form, TransactionService(db))
    except CallbackError as e:
        # already logged at ERROR by the callback handler
        if not ack_rejected_callbacks():
            raise HTTPException(status_code=400, detail=e.reason)
        return {"accepted": False, "reason": e.reason}
    return {
        "accepted": True,
        "recognized": result.recognized,
        "invoices": len(result.invoices),
    }


@app.post("/subscriptions/unsubscribe")
@limiter.limit(UNSUBSCRIBE_RATE_LIMIT)
async def unsubscribe(
    request: Request,
    body: UnsubscribeBody,
    api_key: str = Depends(verify_api_key),
    connector: LiqPayConnector = Depends(get_connector),
    db: AsyncSession = Depends(get_db),
):
    order = OrderRef(order_type=body.order_type, order_id=body.order_id)
    registrar = TransactionRepository(db)
    try:
        unsubscribed = await connector.unsubscribe(order, registrar)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"LiqPay unsubscribe failed for {order.order_type}:{order.order_id}: {e}")
        raise HTTPException(status_code=502, detail="LiqPay API request failed")

    if unsubscribed:
        root = await registrar.find_root_transaction(order, PROVIDER_NAME)
        if root is not None and root.status != TransactionStatus.CANCELED.value:
            await registrar.update_status(root, TransactionStatus.CANCELED)
    return {"unsubscribed": unsubscribed}
