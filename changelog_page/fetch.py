from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

import httpx


async def fetch_changelog(
    client: httpx.AsyncClient,
    url: str,
    max_retries: int = 2,
) -> str:
    logging.info(f"Fetching changelog from {url}")
    attempt = 0
    while True:
        try:
            resp = await client.get(url)
            resp.raise_for_status()
            logging.info(f"Successfully fetched changelog ({len(resp.text)} chars)")
            return resp.text
        except httpx.TimeoutException:
            if attempt < max_retries:
                backoff = 2 ** attempt  # Exponential backoff
                logging.warning(
                    f"Request to {url} timed out. Waiting {backoff} seconds before retry "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                await asyncio.sleep(backoff)
                attempt += 1
            else:
                logging.error(f"Failed to fetch {url} after {max_retries + 1} attempts due to timeout")
                raise
        except httpx.HTTPError as e:
            logging.error(f"Failed to fetch {url}: {e}")
            raise


async def fetch_all(
    urls: Sequence[str],
    timeout: float = 30,
    max_retries: int = 2,
    client: httpx.AsyncClient | None = None,
) -> List[str]:
    """Fetch every URL concurrently; any failure fails the whole batch."""
    if client is not None:
        return list(await asyncio.gather(*(fetch_changelog(client, u, max_retries) for u in urls)))
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
        return list(await asyncio.gather(*(fetch_changelog(owned, u, max_retries) for u in urls)))
