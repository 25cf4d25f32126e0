"""Storefront REST API client."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as ModelValidationError

from .auth import AuthManager
from .errors import AuthRequired, RemoteRejection, TransportFailure
from .models import AuthCredentials, CartItem, Product

logger = logging.getLogger(__name__)

# Gateway-level statuses mean the API itself was not reached.
UNREACHABLE_STATUSES = {502, 503, 504}


class StorefrontClient:
    """Async client for the storefront cart and catalog resources."""

    DEFAULT_BASE_URL = "http://localhost:5000/api"

    def __init__(
        self,
        auth_manager: AuthManager,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the storefront client.

        Args:
            auth_manager: Authentication manager holding the bearer token
            base_url: API root, e.g. https://shop.example.com/api
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.auth_manager = auth_manager
        self.base_url = base_url or self.DEFAULT_BASE_URL
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={
                "User-Agent": "storefront-mcp-server/0.1.0",
                "Accept": "application/json",
            },
        )

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _auth_headers(self, required: bool) -> dict[str, str]:
        token = self.auth_manager.get_token()
        if not token:
            if required:
                raise AuthRequired()
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        auth_required: bool = True,
    ) -> httpx.Response:
        """
        Send a request and map failures onto the cart error taxonomy.

        Raises:
            AuthRequired: No token, or the API answered 401/403
            RemoteRejection: The API answered with another error status
            TransportFailure: Network error, timeout, or gateway failure
        """
        headers = self._auth_headers(auth_required)

        logger.debug(f"{method} {path}")
        try:
            response = await self.client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise TransportFailure("The store took too long to respond. Please try again.") from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportFailure() from e

        if response.status_code in (401, 403):
            logger.warning(f"{method} {path} rejected credentials: status={response.status_code}")
            raise AuthRequired(self._error_message(response) or None)

        if response.status_code in UNREACHABLE_STATUSES:
            logger.warning(f"{method} {path} unreachable: status={response.status_code}")
            raise TransportFailure()

        if response.is_error:
            message = self._error_message(response) or f"Request failed with status {response.status_code}"
            logger.error(f"{method} {path} rejected: status={response.status_code}, message={message}")
            raise RemoteRejection(message, status_code=response.status_code)

        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the API's error message, verbatim."""
        try:
            data = response.json()
        except ValueError:
            return response.text.strip()
        if isinstance(data, dict):
            return str(data.get("message") or data.get("error") or "")
        return ""

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteRejection("Malformed response from the store", status_code=response.status_code) from e

    async def login(self, credentials: AuthCredentials) -> bool:
        """
        Authenticate and store the bearer token.

        Args:
            credentials: User credentials (email and password)

        Returns:
            True if login successful, False if the credentials were refused

        Raises:
            TransportFailure: If the API could not be reached
        """
        logger.info(f"=== LOGIN: email={credentials.email} ===")

        try:
            response = await self._request(
                "POST",
                "/auth/login",
                json={"email": credentials.email, "password": credentials.password},
                auth_required=False,
            )
        except (AuthRequired, RemoteRejection) as e:
            logger.error(f"Login failed: {e}")
            return False

        data = self._json(response)
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            logger.error("Login failed: no token in response")
            return False

        user = data.get("user") or {}
        self.auth_manager.save_session(
            token=token,
            user_email=user.get("email", credentials.email),
            user_id=user.get("id"),
        )
        logger.info("Login successful")
        return True

    async def get_current_user(self) -> dict[str, Any]:
        """
        Validate the stored token against the API.

        A rejected token is dropped from the session before AuthRequired is raised.
        """
        try:
            response = await self._request("GET", "/auth/user")
        except AuthRequired:
            if self.auth_manager.is_authenticated():
                logger.warning("Stored token was rejected, clearing session")
                self.auth_manager.clear_session()
            raise
        return self._json(response)

    def logout(self) -> None:
        """Forget the stored token. The API keeps no server-side session."""
        self.auth_manager.clear_session()

    async def get_products(self) -> list[Product]:
        """
        Fetch the product catalog, including variants.

        Entries that fail to parse are skipped; cart lines pointing at them
        show up as stale.
        """
        response = await self._request("GET", "/products", auth_required=False)
        data = self._json(response)
        if not isinstance(data, list):
            raise RemoteRejection("Unexpected product list payload", status_code=response.status_code)

        products = []
        for entry in data:
            try:
                products.append(Product.model_validate(entry))
            except ModelValidationError as e:
                logger.warning(f"Skipping malformed product {entry.get('id') if isinstance(entry, dict) else entry!r}: {e}")
        logger.info(f"Catalog: {len(products)} product(s)")
        return products

    async def get_cart_items(self) -> list[CartItem]:
        """Fetch every cart item of the session."""
        response = await self._request("GET", "/cart")
        data = self._json(response)
        if not isinstance(data, list):
            raise RemoteRejection("Unexpected cart payload", status_code=response.status_code)
        try:
            return [CartItem.model_validate(entry) for entry in data]
        except ModelValidationError as e:
            raise RemoteRejection(f"Malformed cart item from the store: {e}", status_code=response.status_code) from e

    async def add_cart_item(self, product_id: str, quantity: int = 1, variant_id: Optional[str] = None) -> CartItem:
        """Create a cart item. Merging duplicates is up to the API."""
        payload: dict[str, Any] = {"productId": product_id, "quantity": quantity}
        if variant_id:
            payload["variantId"] = variant_id

        response = await self._request("POST", "/cart", json=payload)
        return self._cart_item(response)

    async def update_cart_item(self, item_id: str, quantity: int) -> CartItem:
        """Set a cart item's quantity."""
        response = await self._request("PUT", f"/cart/{item_id}", json={"quantity": quantity})
        return self._cart_item(response)

    async def delete_cart_item(self, item_id: str) -> None:
        """Delete a cart item."""
        await self._request("DELETE", f"/cart/{item_id}")

    def _cart_item(self, response: httpx.Response) -> CartItem:
        try:
            return CartItem.model_validate(self._json(response))
        except ModelValidationError as e:
            raise RemoteRejection(f"Malformed cart item from the store: {e}", status_code=response.status_code) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
