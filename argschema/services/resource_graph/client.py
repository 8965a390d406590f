"""
Async documentation fetcher with retry logic.

Fetches Microsoft Learn pages and GitHub repository content. Failures after
bounded retries are recorded in ``failures`` and surface to callers as empty
results; only authentication errors propagate.
"""

import asyncio
import json
import logging
from collections import deque
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from argschema.config import GITHUB_API_URL, settings

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Raised on retryable errors (429, 5xx, rate limiting, transport failures)."""
    pass


class APIFatalError(Exception):
    """Raised on non-retryable auth errors (401)."""
    pass


class APIRequestError(Exception):
    """Raised on other non-retryable HTTP errors (404 and friends)."""
    pass


class DocsClient:
    """Async client for documentation pages and the GitHub contents API."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        github_token: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.base_delay = settings.base_retry_delay if base_delay is None else base_delay
        self.max_delay = settings.max_retry_delay if max_delay is None else max_delay
        self.github_token = github_token if github_token is not None else settings.github_token
        self.client = httpx.AsyncClient(
            headers={"User-Agent": user_agent or settings.user_agent},
            timeout=settings.request_timeout if timeout is None else timeout,
            follow_redirects=True,
        )
        self.failures: list[dict] = []
        logger.info(f"DocsClient initialized (max_retries={self.max_retries})")

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _headers_for(self, url: str) -> dict:
        if url.startswith(GITHUB_API_URL):
            headers = {"Accept": "application/vnd.github+json"}
            if self.github_token:
                headers["Authorization"] = f"Bearer {self.github_token}"
            return headers
        return {}

    async def _request(self, url: str) -> str:
        try:
            response = await self.client.get(url, headers=self._headers_for(url))
        except httpx.TransportError as e:
            raise APIError(f"{type(e).__name__} for {url}: {e}") from e

        if response.status_code == 200:
            return response.text

        if response.status_code in (429, 500, 502, 503, 504):
            raise APIError(f"HTTP {response.status_code} for {url}")

        if response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0":
            raise APIError(f"Rate limited by GitHub for {url}")

        if response.status_code == 401:
            raise APIFatalError(f"Auth error {response.status_code}: check GITHUB_TOKEN")

        body_preview = response.text[:200] if response.text else "(empty)"
        raise APIRequestError(f"HTTP {response.status_code} for {url}: {body_preview}")

    async def _get(self, url: str) -> str:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(APIError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay),
            reraise=True,
        ):
            with attempt:
                return await self._request(url)
        return ""

    async def fetch_text(self, url: str) -> str:
        """Fetch a URL as text. Returns "" when unavailable."""
        try:
            text = await self._get(url)
            logger.debug(f"Fetched {url} ({len(text)} chars)")
            return text
        except APIFatalError:
            raise
        except Exception as e:
            self.failures.append({"path": url, "operation": "fetch", "error": str(e)})
            logger.warning(f"Failed to fetch {url}: {e}")
            return ""

    async def fetch_json(self, url: str):
        """Fetch and decode JSON. Returns None when unavailable or invalid."""
        text = await self.fetch_text(url)
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            self.failures.append({"path": url, "operation": "decode", "error": str(e)})
            logger.warning(f"Invalid JSON from {url}: {e}")
            return None

    # --- GitHub contents API ---

    def contents_url(self, repo: str, path: str) -> str:
        return f"{GITHUB_API_URL}/repos/{repo}/contents/{path.strip('/')}"

    async def list_markdown_files(
        self, repo: str, root_path: str, recursive: bool = True
    ) -> list[dict]:
        """List ``.md`` files under a repository path, BFS into subdirectories
        when ``recursive``.

        Returns dicts with name, path and download_url. Directories that fail
        to list are skipped and recorded in ``failures``.
        """
        files: list[dict] = []
        queue: deque[str] = deque([root_path])
        dirs_scanned = 0

        while queue:
            current = queue.popleft()
            items = await self.fetch_json(self.contents_url(repo, current))
            dirs_scanned += 1
            if not isinstance(items, list):
                logger.warning(f"  {current}: no directory listing")
                continue

            for item in items:
                item_type = item.get("type")
                name = item.get("name", "")
                if item_type == "file" and name.endswith(".md"):
                    files.append(
                        {
                            "name": name,
                            "path": item.get("path"),
                            "download_url": item.get("download_url"),
                        }
                    )
                elif item_type == "dir" and recursive:
                    queue.append(item.get("path"))

        logger.info(
            f"Listed {len(files)} markdown files under {repo}/{root_path} "
            f"({dirs_scanned} dirs scanned)"
        )
        return files

    async def fetch_github_file(self, repo: str, path: str) -> str:
        """Download one repository file via its contents-API download_url."""
        info = await self.fetch_json(self.contents_url(repo, path))
        if not isinstance(info, dict) or not info.get("download_url"):
            logger.warning(f"No download_url for {repo}/{path}")
            return ""
        return await self.fetch_text(info["download_url"])

    async def fetch_many(self, urls: list[str], max_workers: Optional[int] = None) -> list[str]:
        """Fetch URLs concurrently; results keep input order, "" for failures."""
        semaphore = asyncio.Semaphore(max_workers or settings.max_workers)

        async def fetch_one(url: str) -> str:
            async with semaphore:
                return await self.fetch_text(url)

        return list(await asyncio.gather(*(fetch_one(u) for u in urls)))
