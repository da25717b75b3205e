# Overview: httpx client for the CounterPOS JSON API.

"""
PosClient talks to a running CounterPOS service (or, in tests, straight to
the WSGI app through httpx.WSGITransport) and turns error responses back into
the error kinds from counterpos.errors, keeping the server's message.

The bearer token from sign_in() is kept on the client and sent with every
later request until sign_out().
"""
from __future__ import annotations

import logging
from decimal import Decimal

import httpx

from .errors import (
    ERRORS_BY_CODE,
    CollaboratorUnavailable,
    DuplicateAccount,
    InvalidCredentials,
    NotFound,
    NotPermitted,
    PosError,
)
from .validation import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:5000"

_ERRORS_BY_STATUS = {
    401: InvalidCredentials,
    403: NotPermitted,
    404: NotFound,
    409: DuplicateAccount,
}


def _error_from_response(response: httpx.Response) -> Exception:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("error") or response.reason_phrase or f"HTTP {response.status_code}"
    details = body.get("details") or {}
    for key in ("redirect", "required_role"):
        if key in body:
            details[key] = body[key]

    code = body.get("code")
    if code == "VALIDATION_ERROR":
        return ValidationError(message)
    if code in ERRORS_BY_CODE:
        return ERRORS_BY_CODE[code](message, details=details)
    if response.status_code >= 500:
        return CollaboratorUnavailable(message, details=details)
    return _ERRORS_BY_STATUS.get(response.status_code, PosError)(message, details=details)


def _amount(value) -> str:
    # Decimal and str pass through exactly; floats go through repr-free str()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class PosClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
        token: str | None = None,
    ):
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)
        self.token = token

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PosClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise CollaboratorUnavailable(str(exc)) from exc

        if response.is_success:
            return response.json() if response.content else {}
        raise _error_from_response(response)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def sign_in(self, identifier: str, password: str) -> dict:
        result = self._request("POST", "/api/auth/login", json={"identifier": identifier, "password": password})
        self.token = result["token"]
        return result

    def sign_out(self) -> None:
        if not self.token:
            return
        try:
            self._request("POST", "/api/auth/logout")
        finally:
            self.token = None

    def current_session(self) -> dict:
        return self._request("GET", "/api/auth/session")

    def authorize(self, required_role: str | None = None) -> dict:
        params = {"role": required_role} if required_role else None
        return self._request("GET", "/api/auth/authorize", params=params)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(self, query: str | None = None, category: str | None = None, in_stock: bool = False) -> list[dict]:
        params = {}
        if query:
            params["q"] = query
        if category:
            params["category"] = category
        if in_stock:
            params["in_stock"] = "true"
        return self._request("GET", "/api/items", params=params)["items"]

    def categories(self) -> list[str]:
        return self._request("GET", "/api/items/categories")["categories"]

    def create_item(self, *, name: str, category: str, price, stock: int) -> dict:
        payload = {"name": name, "category": category, "price": _amount(price), "stock": stock}
        return self._request("POST", "/api/items", json=payload)["item"]

    def update_item(self, item_id: int, **fields) -> dict:
        if "price" in fields:
            fields["price"] = _amount(fields["price"])
        return self._request("PUT", f"/api/items/{item_id}", json=fields)["item"]

    def delete_item(self, item_id: int) -> None:
        self._request("DELETE", f"/api/items/{item_id}")

    # ------------------------------------------------------------------
    # Cart & checkout
    # ------------------------------------------------------------------

    def cart(self) -> dict:
        return self._request("GET", "/api/checkout/cart")["cart"]

    def add_to_cart(self, item_id: int) -> dict:
        return self._request("POST", "/api/checkout/cart/items", json={"item_id": item_id})["cart"]

    def change_quantity(self, item_id: int, delta: int) -> dict:
        return self._request("PATCH", f"/api/checkout/cart/items/{item_id}", json={"delta": delta})["cart"]

    def remove_from_cart(self, item_id: int) -> dict:
        return self._request("DELETE", f"/api/checkout/cart/items/{item_id}")["cart"]

    def clear_cart(self) -> dict:
        return self._request("DELETE", "/api/checkout/cart")["cart"]

    def begin_checkout(self) -> dict:
        return self._request("POST", "/api/checkout/begin")["cart"]

    def cancel_checkout(self) -> dict:
        return self._request("POST", "/api/checkout/cancel")["cart"]

    def quote(self, amount_tendered) -> dict:
        return self._request("POST", "/api/checkout/quote", json={"amount_tendered": _amount(amount_tendered)})["quote"]

    def commit(self, payment_method: str, amount_tendered) -> dict:
        payload = {"payment_method": payment_method, "amount_tendered": _amount(amount_tendered)}
        return self._request("POST", "/api/checkout/commit", json=payload)["order"]

    # ------------------------------------------------------------------
    # Orders, accounts, analytics
    # ------------------------------------------------------------------

    def list_orders(self, cashier_id: int | None = None) -> list[dict]:
        params = {"cashier_id": cashier_id} if cashier_id is not None else None
        return self._request("GET", "/api/orders", params=params)["orders"]

    def get_order(self, order_id: int) -> dict:
        return self._request("GET", f"/api/orders/{order_id}")["order"]

    def list_cashiers(self) -> list[dict]:
        return self._request("GET", "/api/cashiers")["cashiers"]

    def provision_cashier(self, *, email: str, password: str, username: str) -> dict:
        payload = {"email": email, "password": password, "username": username}
        return self._request("POST", "/api/cashiers", json=payload)["cashier"]

    def revoke_cashier(self, account_id: int) -> None:
        self._request("DELETE", f"/api/cashiers/{account_id}")

    def dashboard(self) -> dict:
        return self._request("GET", "/api/dashboard")

    def analytics(self) -> dict:
        return self._request("GET", "/api/analytics")
