"""Concurrent Companies House lookups for batch checks."""

import asyncio
import logging
import os
from typing import Optional

import aiohttp

from .companies_house import (
    API_KEY_ENV,
    BASE_URL,
    DEFAULT_TIMEOUT,
    format_company_data,
    normalize_company_number,
)
from .models import CompanyProfile

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 5


class AsyncCompaniesHouseAPI:
    """Async client for the Companies House company profile endpoint."""

    def __init__(self, session: aiohttp.ClientSession, api_key: str,
                 timeout: int = DEFAULT_TIMEOUT):
        self.session = session
        self.auth = aiohttp.BasicAuth(api_key, "")
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_company(self, crn: str) -> Optional[dict]:
        """Get the company profile resource, or None if unavailable."""
        url = f"{BASE_URL}/company/{normalize_company_number(crn)}"

        try:
            async with self.session.get(url, auth=self.auth, timeout=self.timeout) as resp:
                if resp.status == 200:
                    return await resp.json()
                logger.warning(f"Companies House returned status {resp.status} for {crn}")
                return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error fetching company {crn}: {e}")
            return None


async def lookup_companies(crns: list[str], api_key: Optional[str] = None,
                           max_concurrent: int = DEFAULT_MAX_CONCURRENT
                           ) -> dict[str, Optional[CompanyProfile]]:
    """Fetch profiles for many companies at once.

    Returns a dict keyed by normalised company number in input order; repeated
    numbers are fetched once. Companies that could not be fetched map to None.
    """
    api_key = api_key or os.getenv(API_KEY_ENV, "")
    unique = list(dict.fromkeys(normalize_company_number(crn) for crn in crns))

    if not api_key:
        logger.warning(f"Companies House API key not found. Set {API_KEY_ENV} environment variable.")
        return {crn: None for crn in unique}

    semaphore = asyncio.Semaphore(max_concurrent)

    async with aiohttp.ClientSession(headers={"Accept": "application/json"}) as session:
        api = AsyncCompaniesHouseAPI(session, api_key)

        async def fetch_with_semaphore(crn):
            async with semaphore:
                data = await api.get_company(crn)
                return format_company_data(data) if data else None

        profiles = await asyncio.gather(*(fetch_with_semaphore(crn) for crn in unique))

    found = sum(1 for p in profiles if p)
    logger.info(f"Fetched {found}/{len(unique)} company profiles from Companies House")
    return dict(zip(unique, profiles))
