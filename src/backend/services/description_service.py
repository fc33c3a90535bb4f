"""
Festive description suggestions.

Asks an Azure OpenAI chat deployment for a short, whimsical blurb about a
display at a given address. Owners can use the text when they fill in a
submission. The call never fails the request: when the client is not
configured or the upstream call errors, a fixed fallback text is returned.
"""

from typing import Optional

import httpx
import structlog

from core.config import settings
from core.exceptions import InvalidArgumentError

logger = structlog.get_logger(__name__)

# Returned when the model answers with no text
DEFAULT_DESCRIPTION = "A magical display of holiday cheer!"
# Returned when the model is unconfigured or unreachable
FALLBACK_DESCRIPTION = "A beautiful display of lights that warms the heart this holiday season."

PROMPT_TEMPLATE = (
    "Create a short, whimsical, 2-sentence holiday description for a festive home "
    "display at {address}. Make it sound magical and inviting."
)


class DescriptionService:
    """Client for the description deployment."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        deployment: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.http_client = http_client
        self.endpoint = endpoint if endpoint is not None else settings.AZURE_OPENAI_ENDPOINT
        self.api_key = api_key if api_key is not None else settings.AZURE_OPENAI_API_KEY
        self.deployment = deployment or settings.AZURE_OPENAI_DEPLOYMENT
        self.api_version = api_version or settings.AZURE_OPENAI_API_VERSION
        self.timeout = timeout if timeout is not None else settings.DESCRIPTION_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.api_key)

    def _url(self) -> str:
        base = (self.endpoint or "").rstrip("/")
        return f"{base}/openai/deployments/{self.deployment}/chat/completions"

    async def _post(self, client: httpx.AsyncClient, address: str) -> httpx.Response:
        return await client.post(
            self._url(),
            params={"api-version": self.api_version},
            headers={"api-key": self.api_key or ""},
            json={
                "messages": [{"role": "user", "content": PROMPT_TEMPLATE.format(address=address)}],
                "temperature": 0.8,
                "top_p": 0.9,
            },
        )

    async def generate_festive_description(self, address: str) -> str:
        """
        Suggest a description for the display at ``address``.

        Raises:
            InvalidArgumentError: the address is blank
        """
        if not address or not address.strip():
            raise InvalidArgumentError("Address is required")
        address = address.strip()

        if not self.configured:
            logger.info("description_client_not_configured")
            return FALLBACK_DESCRIPTION

        try:
            if self.http_client is not None:
                response = await self._post(self.http_client, address)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, address)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"].get("content") or ""
        except httpx.HTTPStatusError as e:
            logger.error("description_http_error", status_code=e.response.status_code)
            return FALLBACK_DESCRIPTION
        except httpx.HTTPError as e:
            logger.error("description_request_failed", error=str(e))
            return FALLBACK_DESCRIPTION
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("description_bad_response", error=str(e))
            return FALLBACK_DESCRIPTION

        text = content.strip()
        if not text:
            return DEFAULT_DESCRIPTION
        logger.info("description_generated", length=len(text))
        return text
