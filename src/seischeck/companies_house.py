"""Companies House public data API client."""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

import requests
from dotenv import load_dotenv

from .models import BasicEligibility, CompanyProfile, Director, parse_date, round_half_up

load_dotenv()

logger = logging.getLogger(__name__)

BASE_URL = "https://api.company-information.service.gov.uk"
API_KEY_ENV = "COMPANIES_HOUSE_API_KEY"
DEFAULT_TIMEOUT = 15

ELIGIBLE_COMPANY_TYPES = (
    "ltd",
    "private-limited-guarant-nsc-limited-exemption",
    "private-limited-guarant-nsc",
)


def normalize_company_number(crn: str) -> str:
    """Strip whitespace, upper-case and zero-pad a company number to 8 characters."""
    return "".join(str(crn).split()).upper().rjust(8, "0")


def format_address(address: Optional[dict]) -> str:
    """Join the populated parts of a registered office address."""
    address = address or {}
    parts = [
        address.get("address_line_1"),
        address.get("address_line_2"),
        address.get("locality"),
        address.get("postal_code"),
        address.get("country"),
    ]
    return ", ".join(p for p in parts if p)


def format_company_data(data: dict) -> CompanyProfile:
    """Convert a Companies House company resource to a CompanyProfile."""
    return CompanyProfile(
        name=data.get("company_name", ""),
        crn=data.get("company_number", ""),
        incorporation_date=parse_date(data.get("date_of_creation")),
        registered_address=format_address(data.get("registered_office_address")),
        company_status=data.get("company_status"),
        company_type=data.get("company_type"),
        sic_codes=list(data.get("sic_codes") or []),
    )


def get_active_directors(officers: list[dict]) -> list[Director]:
    """Return the directors who have not resigned."""
    return [
        Director(
            name=officer.get("name", ""),
            role=officer.get("officer_role", ""),
            appointed_on=officer.get("appointed_on"),
            nationality=officer.get("nationality"),
            occupation=officer.get("occupation"),
        )
        for officer in officers
        if "director" in (officer.get("officer_role") or "").lower()
        and not officer.get("resigned_on")
    ]


def check_basic_eligibility(profile: CompanyProfile,
                            now: Optional[datetime] = None) -> BasicEligibility:
    """Quick screen using only the registered details.

    Age limits here are the general ones (2 years SEIS, 7 years EIS); the full
    checker applies the knowledge-intensive variants.
    """
    now = now or datetime.now(timezone.utc)
    issues = []
    is_active = True

    if profile.company_status != "active":
        issues.append("Company is not active")
        is_active = False

    if profile.company_type not in ELIGIBLE_COMPANY_TYPES:
        issues.append("Company type may not be eligible for SEIS/EIS")

    if not profile.incorporation_date:
        # Age unknown, so neither age screen can pass
        issues.append("Incorporation date unknown")
        return BasicEligibility(
            is_seis_eligible=False,
            is_eis_eligible=False,
            company_age_years=None,
            issues=issues,
        )

    age_years = (now.date() - profile.incorporation_date).days / 365.25
    return BasicEligibility(
        is_seis_eligible=is_active and age_years < 2,
        is_eis_eligible=is_active and age_years < 7,
        company_age_years=round_half_up(age_years),
        issues=issues,
    )


class CompaniesHouseAPI:
    """Client for the Companies House public data API."""

    def __init__(self, api_key: Optional[str] = None, timeout: int = DEFAULT_TIMEOUT):
        self.api_key = api_key or os.getenv(API_KEY_ENV, "")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "seischeck/1.0",
        })
        if self.api_key:
            # Companies House uses the key as the basic auth username with no password
            self.session.auth = (self.api_key, "")
        else:
            logger.warning(f"Companies House API key not found. Set {API_KEY_ENV} environment variable.")

    def _get(self, endpoint: str, params: Optional[dict] = None) -> Optional[dict]:
        if not self.api_key:
            logger.error("Companies House API key not configured")
            return None

        url = f"{BASE_URL}{endpoint}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            if resp.status_code == 200:
                return resp.json()
            if resp.status_code == 404:
                logger.warning(f"Companies House: not found ({endpoint})")
            else:
                logger.warning(f"Companies House returned status {resp.status_code} for {endpoint}")
            return None
        except requests.RequestException as e:
            logger.error(f"Error fetching {endpoint} from Companies House: {e}")
            return None

    def get_company(self, crn: str) -> Optional[dict]:
        """Get the company profile resource.

        Args:
            crn: Company registration number (spaces and short numbers are normalised)

        Returns:
            Company data dict or None if not found
        """
        return self._get(f"/company/{normalize_company_number(crn)}")

    def get_company_profile(self, crn: str) -> Optional[CompanyProfile]:
        data = self.get_company(crn)
        return format_company_data(data) if data else None

    def get_officers(self, crn: str) -> list[dict]:
        """Get the officers list for a company (empty if unavailable)."""
        data = self._get(f"/company/{normalize_company_number(crn)}/officers")
        return (data or {}).get("items", [])

    def search_companies(self, query: str, items_per_page: int = 20) -> list[dict]:
        """Search companies by name or number."""
        data = self._get("/search/companies", params={"q": query, "items_per_page": items_per_page})
        return (data or {}).get("items", [])
