import logging
from typing import Any, Awaitable, Callable, TypeAlias

import httpx

from chef.errors import EmptyInputError, NoResultsError, SearchError
from chef.models import StagedRecipe
from chef.normalize import RecipeNormalizer
import config
from data import text_from_webpage


CONFIG = config.Config()
SERPAPI_URL = "https://serpapi.com/search.json"


Fetch: TypeAlias = Callable[[str], Awaitable[str]]


logger = logging.getLogger(__name__)


class SearchResult:
    def __init__(self, url: str, snippet: str | None = None) -> None:
        self.url = url
        self.snippet = snippet

    def __repr__(self) -> str:
        return f"<SearchResult(url={self.url})>"


class WebSearch:
    """Google results through SerpAPI, in the provider's ranking order."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        engine: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = CONFIG.serpapi_api_key if api_key is None else api_key
        self.engine = CONFIG.search_engine if engine is None else engine
        self.http_client = (
            httpx.AsyncClient(timeout=CONFIG.http_timeout)
            if http_client is None
            else http_client
        )

    async def search(self, query: str) -> list[SearchResult]:
        if not self.api_key:
            raise SearchError("No search API key configured.")
        params = {"engine": self.engine, "q": query, "api_key": self.api_key}
        try:
            resp = await self.http_client.get(SERPAPI_URL, params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SearchError(f"Search request failed: {e.__class__.__name__}") from e

        try:
            data: dict[str, Any] = resp.json()
        except ValueError as e:
            raise SearchError("Search returned something other than JSON.") from e
        if "error" in data and not data.get("organic_results"):
            # SerpAPI reports an empty result page as an error too.
            if "hasn't returned any results" in str(data["error"]):
                return []
            raise SearchError(f"Search failed. {data['error']}")
        return [
            SearchResult(url=r["link"], snippet=r.get("snippet"))
            for r in data.get("organic_results", [])
            if r.get("link")
        ]

    async def close(self) -> None:
        await self.http_client.aclose()


class DiscoveryAgent:
    def __init__(
        self,
        *,
        search: WebSearch | None = None,
        fetch: Fetch | None = None,
        normalizer: RecipeNormalizer | None = None,
    ) -> None:
        self.search = WebSearch() if search is None else search
        self.fetch = text_from_webpage if fetch is None else fetch
        self.normalizer = RecipeNormalizer() if normalizer is None else normalizer

    async def discover(self, query: str) -> StagedRecipe:
        query = query.strip()
        if not query:
            raise EmptyInputError()

        logger.info("Searching the web for %r", query)
        results = await self.search.search(query)
        if not results:
            raise NoResultsError(query)

        top = results[0]
        text = await self.fetch(top.url)
        recipe = await self.normalizer.normalize(text, source_url=top.url)
        logger.info("Staged %r from %s", recipe.title, top.url)
        return StagedRecipe(recipe=recipe, query=query, snippet=top.snippet)
