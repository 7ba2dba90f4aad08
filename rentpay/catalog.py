"""Catalog collaborator adapter.

The catalog service owns items. Its payloads have historically used several
spellings for the same field (`price` / `PRICE`, `owner_id` / `ownerId`);
they are normalized here into the canonical `Item` record.
"""

from decimal import Decimal, InvalidOperation

import httpx

from rentpay.common.config import Settings
from rentpay.common.errors import CatalogUnavailableError, ItemNotFoundError
from rentpay.common.logging import logger
from rentpay.common.records import Item, PriceUnit

_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "item_id": ("item_id", "itemId", "id", "ID"),
    "owner_id": ("owner_id", "ownerId", "OWNER_ID"),
    "unit_price": ("unit_price", "unitPrice", "price", "PRICE"),
    "price_unit": ("price_unit", "priceUnit", "PRICE_UNIT"),
}


def _pick(payload: dict, field: str):
    for alias in _FIELD_ALIASES[field]:
        if payload.get(alias) is not None:
            return payload[alias]
    raise ValueError(f"catalog payload missing {field}")


def normalize_item(payload: dict, item_id: str | None = None) -> Item:
    """Map one raw catalog payload onto `Item`."""

    try:
        unit_price = Decimal(str(_pick(payload, "unit_price")))
    except InvalidOperation as exc:
        raise ValueError("catalog payload has non-numeric price") from exc
    return Item(
        item_id=str(item_id or _pick(payload, "item_id")),
        owner_id=str(_pick(payload, "owner_id")),
        unit_price=unit_price,
        price_unit=PriceUnit(str(_pick(payload, "price_unit")).lower()),
    )


class InMemoryCatalog:
    """Fixed item mapping for tests and local runs."""

    def __init__(self, items: list[Item] | None = None) -> None:
        self._items = {item.item_id: item for item in items or []}

    def add(self, item: Item) -> None:
        self._items[item.item_id] = item

    def get_item(self, item_id: str) -> Item:
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"item {item_id} not found")
        return item

    def items_for_owner(self, owner_id: str) -> list[Item]:
        return [item for item in self._items.values() if item.owner_id == owner_id]


class HttpCatalog:
    """Fetch items from the catalog service over HTTP."""

    def __init__(self, base_url: str, timeout: float = 3.0, transport: httpx.BaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _get(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as exc:
            logger.warning("catalog_request_failed path=%s error=%s", path, exc)
            raise CatalogUnavailableError(f"catalog request failed: {exc}") from exc
        if resp.status_code >= 400 and resp.status_code != 404:
            raise CatalogUnavailableError(f"catalog returned status={resp.status_code}")
        return resp

    def get_item(self, item_id: str) -> Item:
        resp = self._get(f"/items/{item_id}")
        if resp.status_code == 404:
            raise ItemNotFoundError(f"item {item_id} not found")
        try:
            payload = resp.json()
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
            # Some catalog versions wrap the record as {"item": {...}}.
            if isinstance(payload.get("item"), dict):
                payload = payload["item"]
            return normalize_item(payload, item_id=item_id)
        except ValueError as exc:
            logger.error("catalog_response_malformed item_id=%s error=%s", item_id, exc)
            raise CatalogUnavailableError(f"catalog response malformed: {exc}") from exc

    def items_for_owner(self, owner_id: str) -> list[Item]:
        resp = self._get("/items", params={"owner_id": owner_id})
        if resp.status_code == 404:
            return []
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                payload = payload.get("items")
            if not isinstance(payload, list) or not all(isinstance(raw, dict) for raw in payload):
                raise ValueError("expected a list of item objects")
            return [normalize_item(raw) for raw in payload]
        except ValueError as exc:
            logger.error("catalog_response_malformed owner_id=%s error=%s", owner_id, exc)
            raise CatalogUnavailableError(f"catalog response malformed: {exc}") from exc


def build_catalog(config: Settings):
    """HTTP catalog, or an in-memory one seeded from `CATALOG_ITEMS` (JSON list of item payloads)."""

    if config.catalog_backend == "memory":
        try:
            items = [normalize_item(raw) for raw in config.catalog_items]
        except ValueError as exc:
            raise ValueError(f"CATALOG_ITEMS entry is invalid: {exc}") from exc
        if not items:
            logger.warning("in-memory catalog is empty; set CATALOG_ITEMS to seed it")
        return InMemoryCatalog(items)
    return HttpCatalog(config.catalog_url, timeout=config.catalog_timeout_seconds)
