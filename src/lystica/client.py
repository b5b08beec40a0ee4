"""Lystica Cloud API client."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable

import httpx

from .http import HttpClient
from .types import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    ClientConfig,
    Page,
)

logger = logging.getLogger(__name__)

API_KEY_PREFIXES = ("lys_live_", "lys_test_")
MAX_PAGE_SIZE = 200


class LysticaClient:
    """Client for interacting with the Lystica Cloud API.

    Example:
        ```python
        from lystica import LysticaClient

        async with LysticaClient(api_key="lys_live_...") as client:
            # List contacts
            page = await client.contacts.list(limit=50, industry="Technology")

            # Iterate every contact
            async for contact in client.contacts.list_all(country="US"):
                print(contact["email"])

            # Send an email
            await client.emails.send(
                from_="you@yourdomain.com",
                to="jane@example.com",
                subject="Hello from Lystica",
                html="<h1>Welcome!</h1>",
            )
        ```
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Lystica client.

        Args:
            api_key: Your Lystica API key (``lys_live_...`` or ``lys_test_...``).
            base_url: Base URL for the Lystica API.
            timeout: Per-attempt request timeout in seconds.
            max_retries: Retries on 408/502/503/504 and network errors.
            transport: Optional httpx transport, mainly for tests.

        Raises:
            ValueError: If the API key or settings are invalid.
        """
        if not api_key:
            raise ValueError(
                "LysticaClient: api_key is required. "
                "Get one at https://lystica.cloud/dashboard/api-keys"
            )
        if not api_key.startswith(API_KEY_PREFIXES):
            raise ValueError(
                "LysticaClient: api_key must start with 'lys_live_' or 'lys_test_'. "
                "Make sure you're using a valid Lystica API key."
            )
        if timeout <= 0:
            raise ValueError("LysticaClient: timeout must be positive")
        if max_retries < 0:
            raise ValueError("LysticaClient: max_retries must be non-negative")

        self.config = ClientConfig(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
        self._http = HttpClient(self.config, transport=transport)

        # Resource endpoints
        self.contacts = ContactsResource(self._http)
        self.companies = CompaniesResource(self._http)
        self.emails = EmailsResource(self._http)
        self.lists = ListsResource(self._http)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> LysticaClient:
        """Create a client from a ``ClientConfig`` (see ``ClientConfig.from_env``)."""
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            **kwargs,
        )

    async def verify_key(self) -> dict[str, Any]:
        """Verify the API key and return its metadata.

        Returns:
            Key info (id, name, prefix, scopes, lastUsedAt, createdAt, expiresAt).
        """
        return await self._http.request("GET", "/api/v1/auth/verify")

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> LysticaClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


async def _iterate_pages(
    fetch: Callable[..., Awaitable[Page[dict[str, Any]]]],
    filters: dict[str, Any],
) -> AsyncIterator[dict[str, Any]]:
    params = {k: v for k, v in filters.items() if k not in ("limit", "cursor")}
    cursor: str | None = None
    while True:
        page = await fetch(**params, limit=MAX_PAGE_SIZE, cursor=cursor)
        for item in page.data:
            yield item
        cursor = page.cursor
        if not cursor:
            break
        logger.debug("Fetching next page (cursor=%s)", cursor)


class ContactsResource:
    """Contacts API resource."""

    BASE_PATH = "/api/v1/contacts"

    def __init__(self, http: HttpClient):
        self._http = http

    async def list(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        industry: str | None = None,
        country: str | None = None,
        company: str | None = None,
        seniority: str | None = None,
        tag: str | None = None,
        search: str | None = None,
    ) -> Page[dict[str, Any]]:
        """List contacts.

        Args:
            limit: Items per page (1-200, default: 50).
            cursor: Cursor from the previous page.
            industry: Filter by industry.
            country: Filter by country.
            company: Filter by company name.
            seniority: Filter by seniority.
            tag: Filter by tag.
            search: Free-text search.

        Returns:
            One page of contacts.
        """
        params = {
            "limit": limit,
            "cursor": cursor,
            "industry": industry,
            "country": country,
            "company": company,
            "seniority": seniority,
            "tag": tag,
            "search": search,
        }
        response = await self._http.request("GET", self.BASE_PATH, params=params)
        return Page.from_response(response)

    async def get(self, contact_id: str) -> dict[str, Any]:
        """Get a contact by ID."""
        return await self._http.request("GET", f"{self.BASE_PATH}/{contact_id}")

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a contact.

        Args:
            data: Contact fields; ``email`` is required.

        Returns:
            Created contact.
        """
        return await self._http.request("POST", self.BASE_PATH, json=data)

    async def update(self, contact_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a contact.

        Args:
            contact_id: Contact ID.
            data: Fields to change.

        Returns:
            Updated contact.
        """
        return await self._http.request(
            "PATCH", f"{self.BASE_PATH}/{contact_id}", json=data
        )

    async def delete(self, contact_id: str) -> None:
        """Delete a contact."""
        await self._http.request("DELETE", f"{self.BASE_PATH}/{contact_id}")

    async def search(self, query: str, **filters: Any) -> Page[dict[str, Any]]:
        """Search contacts. Shorthand for ``list(search=query)``."""
        return await self.list(search=query, **filters)

    async def add_tags(self, contact_id: str, tags: list[str]) -> dict[str, Any]:
        """Add tags to a contact."""
        return await self._http.request(
            "POST", f"{self.BASE_PATH}/{contact_id}/tags", json={"tags": tags}
        )

    async def remove_tags(self, contact_id: str, tags: list[str]) -> dict[str, Any]:
        """Remove tags from a contact."""
        return await self._http.request(
            "DELETE", f"{self.BASE_PATH}/{contact_id}/tags", json={"tags": tags}
        )

    def list_all(self, **filters: Any) -> AsyncIterator[dict[str, Any]]:
        """Iterate over every contact matching ``filters``, following cursors."""
        return _iterate_pages(self.list, filters)


class CompaniesResource:
    """Companies API resource."""

    BASE_PATH = "/api/v1/companies"

    def __init__(self, http: HttpClient):
        self._http = http

    async def list(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        industry: str | None = None,
        country: str | None = None,
        size: str | None = None,
        search: str | None = None,
    ) -> Page[dict[str, Any]]:
        """List companies.

        Args:
            limit: Items per page (1-200).
            cursor: Cursor from the previous page.
            industry: Filter by industry.
            country: Filter by country.
            size: Filter by company size bucket (e.g. ``"51-200"``).
            search: Search by name or domain.

        Returns:
            One page of companies.
        """
        params = {
            "limit": limit,
            "cursor": cursor,
            "industry": industry,
            "country": country,
            "size": size,
            "search": search,
        }
        response = await self._http.request("GET", self.BASE_PATH, params=params)
        return Page.from_response(response)

    async def get(self, company_id: str) -> dict[str, Any]:
        """Get a company by ID."""
        return await self._http.request("GET", f"{self.BASE_PATH}/{company_id}")

    async def search(self, query: str, **filters: Any) -> Page[dict[str, Any]]:
        """Search companies by name or domain."""
        return await self.list(search=query, **filters)

    async def list_contacts(
        self,
        company_id: str,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[dict[str, Any]]:
        """List contacts belonging to a company."""
        response = await self._http.request(
            "GET",
            f"{self.BASE_PATH}/{company_id}/contacts",
            params={"limit": limit, "cursor": cursor},
        )
        return Page.from_response(response)

    def list_all(self, **filters: Any) -> AsyncIterator[dict[str, Any]]:
        """Iterate over every company matching ``filters``, following cursors."""
        return _iterate_pages(self.list, filters)


class EmailsResource:
    """Emails API resource."""

    BASE_PATH = "/api/v1/emails"

    def __init__(self, http: HttpClient):
        self._http = http

    async def send(
        self,
        from_: str,
        to: str | list[str],
        subject: str,
        html: str | None = None,
        text: str | None = None,
        reply_to: str | None = None,
        scheduled_at: str | None = None,
        tags: list[str] | None = None,
    ) -> dict[str, Any]:
        """Send an email, or schedule it for later.

        Args:
            from_: Sender address.
            to: Recipient address or list of addresses.
            subject: Subject line.
            html: HTML body.
            text: Plain-text body.
            reply_to: Reply-To address.
            scheduled_at: ISO 8601 send time.
            tags: Tags to attach.

        Returns:
            The queued email.
        """
        data: dict[str, Any] = {
            "from": from_,
            "to": [to] if isinstance(to, str) else list(to),
            "subject": subject,
        }
        if html is not None:
            data["html"] = html
        if text is not None:
            data["text"] = text
        if reply_to is not None:
            data["replyTo"] = reply_to
        if scheduled_at is not None:
            data["scheduledAt"] = scheduled_at
        if tags is not None:
            data["tags"] = tags
        return await self._http.request("POST", self.BASE_PATH, json=data)

    async def get(self, email_id: str) -> dict[str, Any]:
        """Get the status and details of an email."""
        return await self._http.request("GET", f"{self.BASE_PATH}/{email_id}")

    async def list(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        status: str | None = None,
        list_id: str | None = None,
    ) -> Page[dict[str, Any]]:
        """List sent emails.

        Args:
            limit: Items per page.
            cursor: Cursor from the previous page.
            status: queued, sent, delivered, bounced or failed.
            list_id: Filter by list ID.

        Returns:
            One page of emails.
        """
        params = {"limit": limit, "cursor": cursor, "status": status, "listId": list_id}
        response = await self._http.request("GET", self.BASE_PATH, params=params)
        return Page.from_response(response)

    async def cancel(self, email_id: str) -> None:
        """Cancel a scheduled email that hasn't been sent yet."""
        await self._http.request("POST", f"{self.BASE_PATH}/{email_id}/cancel")


class ListsResource:
    """Contact lists API resource."""

    BASE_PATH = "/api/v1/lists"

    def __init__(self, http: HttpClient):
        self._http = http

    async def list(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        search: str | None = None,
    ) -> Page[dict[str, Any]]:
        """List contact lists."""
        params = {"limit": limit, "cursor": cursor, "search": search}
        response = await self._http.request("GET", self.BASE_PATH, params=params)
        return Page.from_response(response)

    async def get(self, list_id: str) -> dict[str, Any]:
        """Get a list by ID."""
        return await self._http.request("GET", f"{self.BASE_PATH}/{list_id}")

    async def create(self, name: str, description: str | None = None) -> dict[str, Any]:
        """Create a contact list.

        Args:
            name: List name.
            description: Optional description.

        Returns:
            Created list.
        """
        data: dict[str, Any] = {"name": name}
        if description:
            data["description"] = description
        return await self._http.request("POST", self.BASE_PATH, json=data)

    async def update(
        self,
        list_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Update a list's name or description."""
        data: dict[str, Any] = {}
        if name is not None:
            data["name"] = name
        if description is not None:
            data["description"] = description
        return await self._http.request("PATCH", f"{self.BASE_PATH}/{list_id}", json=data)

    async def delete(self, list_id: str) -> None:
        """Delete a list."""
        await self._http.request("DELETE", f"{self.BASE_PATH}/{list_id}")

    async def list_contacts(
        self,
        list_id: str,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[dict[str, Any]]:
        """List contacts belonging to a list."""
        response = await self._http.request(
            "GET",
            f"{self.BASE_PATH}/{list_id}/contacts",
            params={"limit": limit, "cursor": cursor},
        )
        return Page.from_response(response)

    async def add_contacts(self, list_id: str, contact_ids: list[str]) -> None:
        """Add contacts to a list by ID."""
        await self._http.request(
            "POST",
            f"{self.BASE_PATH}/{list_id}/contacts",
            json={"contactIds": contact_ids},
        )

    async def remove_contacts(self, list_id: str, contact_ids: list[str]) -> None:
        """Remove contacts from a list by ID."""
        await self._http.request(
            "DELETE",
            f"{self.BASE_PATH}/{list_id}/contacts",
            json={"contactIds": contact_ids},
        )
