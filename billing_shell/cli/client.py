"""
HTTP Client for the billing API.

Provides an async httpx client for the Chargify REST API. Resource
operations return decoded JSON payloads; error statuses are raised as
ApplicationError subclasses so the shell can report them uniformly.
"""

import hashlib
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from billing_shell import __version__
from billing_shell.core.config import get_app_config
from billing_shell.core.exceptions import (
    AuthenticationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from billing_shell.core.logging import get_logger, log_with_source

logger = get_logger(__name__)


class ClientConfig(BaseModel):
    """Live client settings. Assignment is validated, so `set timeout 10` coerces."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    subdomain: str
    api_key: str
    site_key: str | None = None
    default_family: str | None = None
    host: str = "chargify.com"
    scheme: str = "https"
    timeout: float = 30.0
    user_agent: str = "billing-shell"


def build_client_config(options: Any) -> ClientConfig:
    """
    Build a ClientConfig from resolved shell options.

    API settings from api.yaml are the base; `opt.<name>` overrides from the
    command line or config file are applied on top.
    """
    api = get_app_config().api
    values: dict[str, Any] = {
        "subdomain": options.subdomain,
        "api_key": options.api_key,
        "site_key": options.site_key,
        "default_family": options.default_family,
        "host": api.host,
        "scheme": api.scheme,
        "timeout": api.timeout,
        "user_agent": api.user_agent,
    }
    for key, value in options.client_options.items():
        name = key.replace("-", "_")
        if name in ClientConfig.model_fields:
            values[name] = value
        else:
            log_with_source(logger, "api", "debug", "Ignoring unknown client option", option=key)
    return ClientConfig(**values)


def _json_path(path: str) -> str:
    """Append the .json format suffix to the resource part of a path."""
    resource, sep, query = path.partition("?")
    resource = "/" + resource.strip("/")
    if not resource.endswith(".json"):
        resource = resource + ".json"
    return resource + sep + query


def _error_message(response: httpx.Response) -> tuple[str, list[str]]:
    """Extract the API's error list from a response body."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    errors: list[str] = []
    if isinstance(payload, dict):
        raw = payload.get("errors") or payload.get("error") or []
        errors = [str(e) for e in raw] if isinstance(raw, list) else [str(raw)]
    message = "; ".join(errors) if errors else f"HTTP {response.status_code}"
    return message, errors


class ChargifyClient:
    """
    HTTP client for the Chargify billing API.

    Features:
    - Base URL built from subdomain, host and scheme
    - HTTP basic auth with the API key
    - .json suffix added to every resource path
    - Structured logging of requests/responses
    - Status codes mapped to ApplicationError subclasses

    Usage:
        client = ChargifyClient(ClientConfig(subdomain="acme", api_key="k"))
        customers = await client.list_customers()
        await client.post("/subscriptions", {"subscription": {...}})
    """

    def __init__(self, config: ClientConfig):
        self.config = config
        self._client: httpx.AsyncClient | None = None
        self._stale = False

    @property
    def base_url(self) -> str:
        return f"{self.config.scheme}://{self.config.subdomain}.{self.config.host}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client, rebuilding it after a configuration change."""
        if self._client is not None and self._stale:
            await self.close()
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.config.timeout,
                auth=(self.config.api_key, "x"),
                headers={
                    "Accept": "application/json",
                    "User-Agent": f"{self.config.user_agent}/{__version__}",
                },
            )
            self._stale = False
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def configure(self, key: str, value: Any) -> None:
        """
        Change a configuration property on the live client.

        Raises:
            ValidationError: If the key is unknown or the value does not validate
        """
        if key not in ClientConfig.model_fields:
            raise ValidationError(f"Unknown client setting: {key}")
        try:
            setattr(self.config, key, value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid value for {key}: {value}") from e
        self._stale = True
        log_with_source(logger, "api", "info", "Client setting changed", key=key)

    async def request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make an HTTP request to the billing API.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Resource path (e.g., /customers, /customers/lookup?reference=x)
            **kwargs: Additional arguments for httpx

        Returns:
            httpx.Response

        Raises:
            httpx.HTTPError: On transport failure
        """
        client = await self._get_client()
        url = _json_path(path)

        log_with_source(
            logger,
            "api",
            "debug",
            "API request",
            method=method,
            path=url,
        )

        try:
            response = await client.request(method, url, **kwargs)

            log_with_source(
                logger,
                "api",
                "debug",
                "API response",
                method=method,
                path=url,
                status_code=response.status_code,
            )

            return response

        except httpx.HTTPError as e:
            log_with_source(
                logger,
                "api",
                "error",
                "API request failed",
                method=method,
                path=url,
                error=str(e),
            )
            raise

    async def _send(self, method: str, path: str, body: Any = None) -> Any:
        """Send a request and decode the payload, raising on error statuses."""
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        response = await self.request(method, path, **kwargs)

        if response.status_code >= 400:
            message, errors = _error_message(response)
            if response.status_code in (401, 403):
                raise AuthenticationError(message)
            if response.status_code == 404:
                raise NotFoundError(f"Not found: {path}")
            if response.status_code == 422:
                raise ValidationError(message, details={"errors": errors})
            raise ExternalServiceError(message, status_code=response.status_code)

        if not response.content or not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"Invalid JSON response from {path}",
                status_code=response.status_code,
            ) from e

    async def get(self, path: str) -> Any:
        """Make a GET request."""
        return await self._send("GET", path)

    async def post(self, path: str, body: Any = None) -> Any:
        """Make a POST request."""
        return await self._send("POST", path, body)

    async def put(self, path: str, body: Any = None) -> Any:
        """Make a PUT request."""
        return await self._send("PUT", path, body)

    async def delete(self, path: str) -> Any:
        """Make a DELETE request."""
        return await self._send("DELETE", path)

    # -------------------------------------------------------------------------
    # Synchronous helpers
    # -------------------------------------------------------------------------

    def url(self, path: str = "/") -> str:
        """Full URL for a resource path."""
        return self.base_url + _json_path(path)

    def hosted_page_url(self, page: str, subscription_id: str) -> str:
        """
        Signed URL of a hosted page (e.g. update_payment) for a subscription.

        The token is the first 10 hex characters of SHA-1("page--id--site_key").
        """
        if not self.config.site_key:
            raise ValidationError("A site key is required for hosted page URLs")
        message = f"{page}--{subscription_id}--{self.config.site_key}"
        token = hashlib.sha1(message.encode("utf-8")).hexdigest()[:10]
        return f"{self.base_url}/{page}/{subscription_id}/{token}"

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def list_customers(self, page: str | None = None) -> Any:
        path = "/customers" if page is None else f"/customers?page={page}"
        return await self.get(path)

    async def get_customer(self, customer_id: str) -> Any:
        return await self.get(f"/customers/{customer_id}")

    async def get_customer_by_reference(self, reference: str) -> Any:
        return await self.get(f"/customers/lookup?reference={reference}")

    async def create_customer(self, body: Any) -> Any:
        return await self.post("/customers", body)

    async def update_customer(self, customer_id: str, body: Any) -> Any:
        return await self.put(f"/customers/{customer_id}", body)

    async def delete_customer(self, customer_id: str) -> Any:
        return await self.delete(f"/customers/{customer_id}")

    async def customer_subscriptions(self, customer_id: str) -> Any:
        return await self.get(f"/customers/{customer_id}/subscriptions")

    async def customer_subscriptions_by_reference(self, reference: str) -> Any:
        """Resolve a customer reference to its numeric ID, then list subscriptions."""
        found = await self.get_customer_by_reference(reference)
        customer = found.get("customer", found) if isinstance(found, dict) else None
        if not customer or "id" not in customer:
            raise NotFoundError(f"No customer with reference: {reference}")
        return await self.customer_subscriptions(str(customer["id"]))

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def list_subscriptions(self, page: str | None = None) -> Any:
        path = "/subscriptions" if page is None else f"/subscriptions?page={page}"
        return await self.get(path)

    async def get_subscription(self, subscription_id: str) -> Any:
        return await self.get(f"/subscriptions/{subscription_id}")

    async def create_subscription(self, body: Any) -> Any:
        return await self.post("/subscriptions", body)

    async def update_subscription(self, subscription_id: str, body: Any) -> Any:
        return await self.put(f"/subscriptions/{subscription_id}", body)

    async def cancel_subscription(self, subscription_id: str, *message: str) -> Any:
        body = None
        if message:
            body = {"subscription": {"cancellation_message": " ".join(message)}}
        return await self._send("DELETE", f"/subscriptions/{subscription_id}", body)

    async def reactivate_subscription(self, subscription_id: str) -> Any:
        return await self.put(f"/subscriptions/{subscription_id}/reactivate")

    async def subscription_components(self, subscription_id: str) -> Any:
        return await self.get(f"/subscriptions/{subscription_id}/components")

    async def subscription_transactions(self, subscription_id: str) -> Any:
        return await self.get(f"/subscriptions/{subscription_id}/transactions")

    # -------------------------------------------------------------------------
    # Products and families
    # -------------------------------------------------------------------------

    async def list_products(self) -> Any:
        return await self.get("/products")

    async def get_product(self, product_id: str) -> Any:
        return await self.get(f"/products/{product_id}")

    async def get_product_by_handle(self, handle: str) -> Any:
        return await self.get(f"/products/handle/{handle}")

    async def list_product_families(self) -> Any:
        return await self.get("/product_families")

    async def get_product_family(self, family_id: str | None = None) -> Any:
        return await self.get(f"/product_families/{self._family(family_id)}")

    async def product_family_components(self, family_id: str | None = None) -> Any:
        return await self.get(f"/product_families/{self._family(family_id)}/components")

    # -------------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------------

    def _family(self, family_id: str | None) -> str:
        family = family_id or self.config.default_family
        if not family:
            raise ValidationError("A product family is required (pass one or set --family)")
        return family

    async def list_coupons(self, family_id: str | None = None) -> Any:
        return await self.get(f"/product_families/{self._family(family_id)}/coupons")

    async def get_coupon(self, coupon_id: str, family_id: str | None = None) -> Any:
        return await self.get(f"/product_families/{self._family(family_id)}/coupons/{coupon_id}")

    async def find_coupon(self, code: str, family_id: str | None = None) -> Any:
        family = self._family(family_id)
        return await self.get(f"/coupons/find?code={code}&product_family_id={family}")

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    async def list_events(self, since_id: str | None = None) -> Any:
        path = "/events" if since_id is None else f"/events?since_id={since_id}"
        return await self.get(path)

    async def list_transactions(self) -> Any:
        return await self.get("/transactions")

    async def get_transaction(self, transaction_id: str) -> Any:
        return await self.get(f"/transactions/{transaction_id}")

    async def list_invoices(self) -> Any:
        return await self.get("/invoices")

    async def get_statement(self, statement_id: str) -> Any:
        return await self.get(f"/statements/{statement_id}")

    async def get_stats(self) -> Any:
        return await self.get("/stats")

    async def list_webhooks(self) -> Any:
        return await self.get("/webhooks")


def create_client(options: Any) -> ChargifyClient:
    """Create a client for resolved shell options."""
    return ChargifyClient(build_client_config(options))
