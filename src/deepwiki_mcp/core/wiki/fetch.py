"""Download the generated wiki for a repository."""

import logging
from typing import Optional

import httpx

from deepwiki_mcp.config.domains import AutomationConfig
from deepwiki_mcp.core.errors.wiki import WikiFetchError

logger = logging.getLogger(__name__)


async def fetch_wiki_content(
    repo: str,
    automation: AutomationConfig,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> str:
    """Fetch the React Server Component stream that holds a repository's wiki.

    Args:
        repo: Repository in ``owner/repo`` form
        automation: Provides the site URL and user agent
        client: Optional pre-built httpx client (not closed here)
        timeout: Request timeout in seconds

    Raises:
        WikiFetchError: On transport failure or a non-2xx response
    """
    url = f"{automation.site_url.rstrip('/')}/{repo}"
    headers = {"RSC": "1", "User-Agent": automation.user_agent}
    logger.info("Downloading wiki content for %s", repo)

    try:
        if client is not None:
            response = await client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
                response = await owned.get(url, headers=headers)
    except httpx.TimeoutException as e:
        raise WikiFetchError(repo, f"request to {url} timed out") from e
    except httpx.HTTPError as e:
        raise WikiFetchError(repo, f"network error connecting to {url}: {e}") from e

    if response.status_code >= 400:
        raise WikiFetchError(
            repo,
            f"HTTP {response.status_code}: {response.reason_phrase}",
            status_code=response.status_code,
        )
    return response.text
