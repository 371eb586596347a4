import logging

import httpx

import app.config.config as configs
from app.service.exceptions import TransientError

logger = logging.getLogger(__name__)
order_base_url = configs.ORDER_SERVICE_URL
order_client = httpx.AsyncClient(timeout=configs.ORDER_LOOKUP_TIMEOUT)


async def order_belongs_to(order_id: str, user_id: str) -> bool:
    """Ask the order service whether `order_id` exists and was placed by `user_id`."""
    try:
        response = await order_client.get(
            f"{order_base_url}/api/v1/orders/{order_id}",
            params={"user_id": user_id},
        )
    except httpx.RequestError as exc:
        logger.exception("order lookup failed order_id=%s", order_id)
        raise TransientError() from exc

    if response.status_code == 404:
        return False
    if response.status_code != 200:
        logger.error("order lookup returned status=%s order_id=%s", response.status_code, order_id)
        raise TransientError()

    return str(response.json().get("user_id", "")) == user_id


async def close_clients() -> None:
    await order_client.aclose()
