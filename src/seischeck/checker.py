"""SEIS/EIS eligibility checker.

Applies HMRC scheme thresholds to company and funding round facts. Every rule
in a scheme is always evaluated and recorded in ``checks_performed``; the overall
result only ever moves down the lattice eligible -> possibly_eligible ->
not_eligible.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Callable, Optional

from .models import (
    BOTH,
    EIS,
    ELIGIBLE,
    NOT_ELIGIBLE,
    POSSIBLY_ELIGIBLE,
    SEIS,
    CompanyFacts,
    CriterionCheck,
    EligibilityVerdict,
    FundingRoundFacts,
    round_half_up,
)

logger = logging.getLogger(__name__)

# =============================================================================
# THRESHOLDS
# =============================================================================

DAYS_PER_YEAR = 365.25

SEIS_MAX_AGE_YEARS = 2
SEIS_MAX_GROSS_ASSETS = 200_000
SEIS_MAX_EMPLOYEES = 25
SEIS_MAX_INVESTMENT = 150_000

EIS_MAX_AGE_YEARS = 7
EIS_KI_MAX_AGE_YEARS = 10
EIS_MAX_GROSS_ASSETS_BEFORE = 15_000_000
EIS_MAX_GROSS_ASSETS_AFTER = 16_000_000
EIS_MAX_EMPLOYEES = 250
EIS_KI_MAX_EMPLOYEES = 500
EIS_ANNUAL_LIMIT = 5_000_000
EIS_KI_ANNUAL_LIMIT = 10_000_000

# SIC division prefixes treated as knowledge-intensive (simplified list)
KNOWLEDGE_INTENSIVE_SIC_PREFIXES = (
    "62", "63", "72",  # Information and communication
    "71",  # Architectural and engineering activities
    "73",  # Advertising and market research
    "74",  # Other professional, scientific and technical activities
    "75",  # Veterinary activities
)

MANUAL_VERIFICATION = "manual verification required"


class InvalidSchemeError(ValueError):
    """Raised when a funding round names a scheme other than SEIS, EIS or BOTH."""

    def __init__(self, scheme):
        super().__init__(f"Invalid scheme type: {scheme!r}")
        self.scheme = scheme


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_knowledge_intensive(sic_codes) -> bool:
    """Check whether any SIC code falls in a knowledge-intensive division."""
    return any(
        str(code).startswith(prefix)
        for code in sic_codes or ()
        for prefix in KNOWLEDGE_INTENSIVE_SIC_PREFIXES
    )


def _downgrade(result: str) -> str:
    """Cap an eligible result at possibly_eligible; leave anything else alone."""
    return POSSIBLY_ELIGIBLE if result == ELIGIBLE else result


class EligibilityChecker:
    """Evaluates a company and funding round against SEIS and EIS rules."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or _utc_now

    def company_age_years(self, incorporation_date: date) -> float:
        """Age in years at the clock's current time, using 365.25-day years."""
        now = self.clock()
        if isinstance(incorporation_date, datetime):
            incorporated = incorporation_date
            if incorporated.tzinfo is None:
                incorporated = incorporated.replace(tzinfo=now.tzinfo)
        else:
            incorporated = datetime.combine(incorporation_date, time.min, tzinfo=now.tzinfo)
        return (now - incorporated).total_seconds() / (DAYS_PER_YEAR * 24 * 60 * 60)

    def check_seis_eligibility(self, company: CompanyFacts,
                               funding_round: FundingRoundFacts) -> EligibilityVerdict:
        """Apply the SEIS rule set."""
        checks = {}
        reasons = []
        result = ELIGIBLE

        # 1. Company age
        age = self.company_age_years(company.incorporation_date)
        checks["company_age"] = CriterionCheck(
            passed=age < SEIS_MAX_AGE_YEARS,
            value=round_half_up(age),
            threshold=SEIS_MAX_AGE_YEARS,
            notes="Company must be less than 2 years old for SEIS",
        )
        if not checks["company_age"].passed:
            reasons.append("Company is too old for SEIS (must be less than 2 years)")
            result = NOT_ELIGIBLE

        # 2. Gross assets
        if company.gross_assets is not None:
            checks["gross_assets"] = CriterionCheck(
                passed=company.gross_assets <= SEIS_MAX_GROSS_ASSETS,
                value=company.gross_assets,
                threshold=SEIS_MAX_GROSS_ASSETS,
                notes="Gross assets must not exceed £200,000 for SEIS",
            )
            if not checks["gross_assets"].passed:
                reasons.append("Gross assets exceed £200,000 limit for SEIS")
                result = NOT_ELIGIBLE
        else:
            checks["gross_assets"] = CriterionCheck(
                passed=True,
                notes=f"Gross assets not provided - {MANUAL_VERIFICATION}",
            )
            result = _downgrade(result)

        # 3. Employees
        if company.employees is not None:
            checks["employee_count"] = CriterionCheck(
                passed=company.employees <= SEIS_MAX_EMPLOYEES,
                value=company.employees,
                threshold=SEIS_MAX_EMPLOYEES,
                notes="Must have 25 or fewer employees for SEIS",
            )
            if not checks["employee_count"].passed:
                reasons.append("Too many employees for SEIS (must be 25 or fewer)")
                result = NOT_ELIGIBLE
        else:
            checks["employee_count"] = CriterionCheck(
                passed=True,
                notes=f"Employee count not provided - {MANUAL_VERIFICATION}",
            )
            result = _downgrade(result)

        # 4. Investment amount
        checks["investment_amount"] = CriterionCheck(
            passed=funding_round.amount_to_raise <= SEIS_MAX_INVESTMENT,
            value=funding_round.amount_to_raise,
            threshold=SEIS_MAX_INVESTMENT,
            notes="Maximum SEIS investment per company is £150,000",
        )
        if not checks["investment_amount"].passed:
            reasons.append("Investment amount exceeds £150,000 SEIS limit")
            result = NOT_ELIGIBLE

        # 5. Previous SEIS funding
        if company.previous_seis_rounds and company.previous_seis_rounds > 0:
            checks["previous_seis"] = CriterionCheck(
                passed=False,
                value=company.previous_seis_rounds,
                notes="Company has already received SEIS funding",
            )
            reasons.append("Company has already received SEIS funding")
            result = NOT_ELIGIBLE
        else:
            checks["previous_seis"] = CriterionCheck(
                passed=True,
                value=company.previous_seis_rounds or 0,
                notes="No previous SEIS funding",
            )

        # 6. Group structure
        if company.is_parent_company or company.has_subsidiaries:
            checks["group_structure"] = CriterionCheck(
                passed=False,
                notes="SEIS companies cannot be part of a group structure",
            )
            reasons.append("SEIS companies cannot have subsidiaries or be subsidiaries")
            result = NOT_ELIGIBLE
        else:
            checks["group_structure"] = CriterionCheck(
                passed=True,
                notes="No group structure identified",
            )

        # 7. Trading activity
        checks["trading_activity"] = CriterionCheck(
            passed=True,
            notes=f"Must carry on qualifying trade - {MANUAL_VERIFICATION}",
        )
        result = _downgrade(result)

        logger.debug(f"SEIS check: {result} ({len(reasons)} blocking reasons)")
        return EligibilityVerdict(result=result, reasons=reasons, checks_performed=checks)

    def check_eis_eligibility(self, company: CompanyFacts,
                              funding_round: FundingRoundFacts) -> EligibilityVerdict:
        """Apply the EIS rule set, with knowledge-intensive limits where applicable."""
        checks = {}
        reasons = []
        result = ELIGIBLE

        knowledge_intensive = is_knowledge_intensive(company.sic_codes)
        ki_suffix = " (knowledge-intensive)" if knowledge_intensive else ""

        # 1. Company age
        age_limit = EIS_KI_MAX_AGE_YEARS if knowledge_intensive else EIS_MAX_AGE_YEARS
        age = self.company_age_years(company.incorporation_date)
        checks["company_age"] = CriterionCheck(
            passed=age < age_limit,
            value=round_half_up(age),
            threshold=age_limit,
            notes=f"Company must be less than {age_limit} years old for EIS{ki_suffix}",
        )
        if not checks["company_age"].passed:
            reasons.append(f"Company is too old for EIS (must be less than {age_limit} years)")
            result = NOT_ELIGIBLE

        # 2. Gross assets before and after the investment
        if company.gross_assets is not None:
            checks["gross_assets_before"] = CriterionCheck(
                passed=company.gross_assets <= EIS_MAX_GROSS_ASSETS_BEFORE,
                value=company.gross_assets,
                threshold=EIS_MAX_GROSS_ASSETS_BEFORE,
                notes="Gross assets must not exceed £15m before investment for EIS",
            )
            assets_after = company.gross_assets + funding_round.amount_to_raise
            checks["gross_assets_after"] = CriterionCheck(
                passed=assets_after <= EIS_MAX_GROSS_ASSETS_AFTER,
                value=assets_after,
                threshold=EIS_MAX_GROSS_ASSETS_AFTER,
                notes="Gross assets must not exceed £16m after investment for EIS",
            )
            if not (checks["gross_assets_before"].passed and checks["gross_assets_after"].passed):
                reasons.append("Gross assets exceed EIS limits")
                result = NOT_ELIGIBLE
        else:
            checks["gross_assets_before"] = CriterionCheck(
                passed=True,
                notes=f"Gross assets not provided - {MANUAL_VERIFICATION}",
            )
            result = _downgrade(result)

        # 3. Employees
        employee_limit = EIS_KI_MAX_EMPLOYEES if knowledge_intensive else EIS_MAX_EMPLOYEES
        if company.employees is not None:
            checks["employee_count"] = CriterionCheck(
                passed=company.employees <= employee_limit,
                value=company.employees,
                threshold=employee_limit,
                notes=f"Must have {employee_limit} or fewer employees for EIS{ki_suffix}",
            )
            if not checks["employee_count"].passed:
                reasons.append(f"Too many employees for EIS (must be {employee_limit} or fewer)")
                result = NOT_ELIGIBLE
        else:
            checks["employee_count"] = CriterionCheck(
                passed=True,
                notes=f"Employee count not provided - {MANUAL_VERIFICATION}",
            )
            result = _downgrade(result)

        # 4. Annual investment limit
        annual_limit = EIS_KI_ANNUAL_LIMIT if knowledge_intensive else EIS_ANNUAL_LIMIT
        checks["annual_investment_limit"] = CriterionCheck(
            passed=funding_round.amount_to_raise <= annual_limit,
            value=funding_round.amount_to_raise,
            threshold=annual_limit,
            notes=f"Maximum EIS investment per year is £{annual_limit:,}{ki_suffix}",
        )
        if not checks["annual_investment_limit"].passed:
            reasons.append(f"Investment amount exceeds annual EIS limit of £{annual_limit:,}")
            result = NOT_ELIGIBLE

        # 5. Trading activity
        checks["trading_activity"] = CriterionCheck(
            passed=True,
            notes=f"Must carry on qualifying trade - {MANUAL_VERIFICATION}",
        )
        result = _downgrade(result)

        # 6. Independence: recorded only, the trading activity check already capped the result
        checks["independence"] = CriterionCheck(
            passed=True,
            notes=f"Company must be independent - {MANUAL_VERIFICATION}",
        )

        logger.debug(f"EIS check: {result} (knowledge-intensive={knowledge_intensive})")
        return EligibilityVerdict(result=result, reasons=reasons, checks_performed=checks)

    def check_eligibility(self, company: CompanyFacts,
                          funding_round: FundingRoundFacts) -> EligibilityVerdict:
        """Check eligibility for the scheme(s) named by the funding round.

        Raises:
            InvalidSchemeError: if the scheme is not SEIS, EIS or BOTH
        """
        scheme = funding_round.scheme
        if scheme == SEIS:
            return self.check_seis_eligibility(company, funding_round)
        if scheme == EIS:
            return self.check_eis_eligibility(company, funding_round)
        if scheme != BOTH:
            raise InvalidSchemeError(scheme)

        seis = self.check_seis_eligibility(company, funding_round)
        eis = self.check_eis_eligibility(company, funding_round)

        checks = {f"seis.{name}": check for name, check in seis.checks_performed.items()}
        checks.update((f"eis.{name}", check) for name, check in eis.checks_performed.items())

        if seis.result == NOT_ELIGIBLE and eis.result == NOT_ELIGIBLE:
            result = NOT_ELIGIBLE
        elif seis.result == ELIGIBLE and eis.result == ELIGIBLE:
            result = ELIGIBLE
        else:
            result = POSSIBLY_ELIGIBLE

        reasons = [] if result == ELIGIBLE else seis.reasons + eis.reasons
        logger.debug(f"Combined SEIS/EIS check: {result}")
        return EligibilityVerdict(result=result, reasons=reasons, checks_performed=checks)


eligibility_checker = EligibilityChecker()


def check_eligibility(company: CompanyFacts, funding_round: FundingRoundFacts,
                      clock: Optional[Callable[[], datetime]] = None) -> EligibilityVerdict:
    """Convenience wrapper around EligibilityChecker.check_eligibility."""
    checker = EligibilityChecker(clock) if clock else eligibility_checker
    return checker.check_eligibility(company, funding_round)
