"""Team member catalog lookup.

A plain request/response call listing the agents the backend can put on a
team. Transient failures are retried; the streaming core never calls this.
"""

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_fixed

from agent_workflow_client.platform.clients.chat.config import ChatClientConfig
from agent_workflow_client.platform.clients.chat.exceptions import (
    ChatConnectionError,
    ChatHTTPStatusError,
    ChatTimeoutError,
    ChatTransportError,
)
from agent_workflow_client.platform.observability import get_logger

logger = get_logger(__name__)


class TeamMember(BaseModel):
    """An agent the backend can schedule.

    Attributes:
        name: Agent name, as sent back in ``team_members`` of chat requests.
        description: Human-readable description.
        is_optional: Whether the user may disable this agent.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    description: str = ""
    is_optional: bool = False


class TeamMemberCatalogResponse(BaseModel):
    team_members: dict[str, TeamMember]


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, (ChatConnectionError, ChatTimeoutError)):
        return True
    return isinstance(error, ChatHTTPStatusError) and error.status_code >= 500


class TeamMemberCatalog:
    """Client for the team member catalog endpoint."""

    def __init__(
        self,
        httpx_client: httpx.AsyncClient,
        base_url: str,
        config: ChatClientConfig | None = None,
    ):
        """Initialize the catalog client.

        Args:
            httpx_client: HTTP client for making requests.
            base_url: Base URL of the backend API.
            config: Optional client configuration for path and retry settings.
        """
        self._httpx_client = httpx_client
        self._config = config or ChatClientConfig()
        self._url = base_url.rstrip("/") + self._config.team_members_path

    async def query_team_members(self) -> list[TeamMember]:
        """Fetch the catalog.

        Required members come first, then optional ones, each group in the
        order the backend listed them.

        Returns:
            The ordered list of team members.

        Raises:
            ChatConnectionError: If the backend cannot be reached after retries.
            ChatTimeoutError: If the request keeps timing out.
            ChatHTTPStatusError: If the backend answers with an error status.
            ChatTransportError: If the response body is not a valid catalog.
        """
        retrying = AsyncRetrying(
            wait=wait_fixed(self._config.catalog_retry_wait_seconds),
            stop=stop_after_attempt(self._config.catalog_max_attempts),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._fetch()

        members = list(self._parse(response).team_members.values())
        return [member for member in members if not member.is_optional] + [
            member for member in members if member.is_optional
        ]

    async def _fetch(self) -> httpx.Response:
        try:
            response = await self._httpx_client.get(self._url)
        except httpx.TimeoutException as e:
            raise ChatTimeoutError(str(e) or "request timed out", url=self._url) from e
        except httpx.HTTPError as e:
            raise ChatConnectionError(str(e) or type(e).__name__, url=self._url) from e

        if response.is_error:
            logger.warning(
                "team member catalog request failed",
                url=self._url,
                status_code=response.status_code,
            )
            raise ChatHTTPStatusError(response.status_code, url=self._url, body=response.text[:500])
        return response

    def _parse(self, response: httpx.Response) -> TeamMemberCatalogResponse:
        try:
            return TeamMemberCatalogResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ChatTransportError(f"Invalid team member catalog: {e.error_count()} error(s)", url=self._url) from e
