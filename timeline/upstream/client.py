"""GraphQL client for the upstream timeline API."""

import json
from typing import Any

import httpx

from timeline.config import Settings
from timeline.errors import UpstreamError
from timeline.upstream.constants import DEFAULT_OPERATION_IDS, features_for


class UpstreamClient:
    """Client for issuing GraphQL GET requests against the upstream API.

    Every request is a GET with ``variables``, ``features`` and optional
    ``fieldToggles`` JSON-encoded into the query string.
    """

    def __init__(self, settings: Settings):
        """Initialize the client from application settings.

        Args:
            settings: Settings carrying base URLs, operation ids and timeout
        """
        self.base_url = (settings.third_party_api or settings.upstream_base_url).rstrip("/")
        self.operation_ids = {**DEFAULT_OPERATION_IDS, **settings.operation_ids}
        self.timeout = settings.upstream_timeout
        self._headers = {"accept-encoding": "gzip"}
        if settings.upstream_bearer_token and not settings.third_party_api:
            self._headers["Authorization"] = f"Bearer {settings.upstream_bearer_token}"

    def endpoint(self, operation: str) -> str:
        """Build the request URL for a GraphQL operation.

        Raises:
            UpstreamError: If no query id is configured for the operation
        """
        query_id = self.operation_ids.get(operation)
        if not query_id:
            raise UpstreamError(f"No query id configured for {operation}")
        return f"{self.base_url}/{query_id}/{operation}"

    async def graphql(
        self,
        operation: str,
        variables: dict[str, Any],
        features: dict[str, bool] | None = None,
        field_toggles: dict[str, bool] | None = None,
    ) -> dict[str, Any]:
        """Run a GraphQL query and return the decoded JSON body.

        Args:
            operation: Operation name, e.g. ``UserTweets``
            variables: GraphQL variables
            features: Feature flags (defaults to the operation's flags)
            field_toggles: Optional field toggles

        Returns:
            The decoded response body

        Raises:
            UpstreamError: On transport errors, non-2xx responses or bodies
                that are not JSON objects
        """
        params = {
            "variables": json.dumps(variables),
            "features": json.dumps(features if features is not None else features_for(operation)),
        }
        if field_toggles is not None:
            params["fieldToggles"] = json.dumps(field_toggles)

        url = self.endpoint(operation)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(url, headers=self._headers, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{operation} request failed: {e}") from e

        if r.status_code >= 400:
            raise UpstreamError(
                f"{operation} returned HTTP {r.status_code}", status_code=r.status_code
            )

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError(f"{operation} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise UpstreamError(f"{operation} returned unexpected payload")

        return data
