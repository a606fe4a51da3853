"""
seischeck - SEIS/EIS eligibility checks for UK companies.

This package applies HMRC Seed Enterprise Investment Scheme and Enterprise
Investment Scheme thresholds to company and funding round facts, and looks up
the registered company details those checks need from Companies House.
"""

from .models import (
    CompanyFacts,
    CompanyProfile,
    CriterionCheck,
    EligibilityVerdict,
    FundingRoundFacts,
)
from .checker import EligibilityChecker, InvalidSchemeError, check_eligibility
from .companies_house import CompaniesHouseAPI

__version__ = "0.1.0"
__all__ = [
    "CompanyFacts",
    "CompanyProfile",
    "CriterionCheck",
    "EligibilityVerdict",
    "FundingRoundFacts",
    "EligibilityChecker",
    "InvalidSchemeError",
    "check_eligibility",
    "CompaniesHouseAPI",
]
