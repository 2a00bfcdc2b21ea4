"""
Simple merchant usage example (server-side). The merchant registers a
transaction and renders the returned action as an auto-submitted form that
sends the buyer to the LiqPay checkout page.
"""
import asyncio
import os
from decimal import Decimal

from payments_liqpay.connectors.base import Order, Payment
from payments_liqpay.connectors.liqpay import LiqPayConfig, LiqPayConnector
from payments_liqpay.database import TransactionRepository, close_db, get_async_session_factory, init_db


async def run():
    os.environ.setdefault("LIQPAY_PUBLIC_KEY", "sandbox_i00000000")  # set your sandbox keys in env
    os.environ.setdefault("LIQPAY_PRIVATE_KEY", "sandbox_secret")
    await init_db("sqlite+aiosqlite:///:memory:")

    connector = LiqPayConnector(LiqPayConfig.from_env(sandbox=True))
    order = Order(
        order_type="shop.order",
        order_id="1001",
        payment=Payment(
            amount=Decimal("250.00"),
            currency="UAH",
            description="Order #1001",
            return_url="https://shop.example/orders/1001",
        ),
    )

    async with get_async_session_factory()() as session:
        action = await connector.create_payment(order, TransactionRepository(session))
        await session.commit()

    print(f'<form method="{action.method}" action="{action.url}">')
    for name, value in action.data.items():
        print(f'  <input type="hidden" name="{name}" value="{value}"/>')
    print("</form>")

    await connector.aclose()
    await close_db()


if __name__ == "__main__":
    asyncio.run(run())
