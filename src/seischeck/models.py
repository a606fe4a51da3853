"""Data models for seischeck package."""

import math
from dataclasses import dataclass, asdict, field
from datetime import date, datetime
from typing import Any, Optional

SEIS = "SEIS"
EIS = "EIS"
BOTH = "BOTH"
SCHEMES = (SEIS, EIS, BOTH)

ELIGIBLE = "eligible"
POSSIBLY_ELIGIBLE = "possibly_eligible"
NOT_ELIGIBLE = "not_eligible"


def parse_date(value) -> Optional[date]:
    """Parse an ISO date or datetime string (as Companies House returns them)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = str(value).strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_number(value, name: str, integer: bool = False):
    """Parse a numeric field from form or JSON input (numeric strings allowed).

    Raises:
        ValueError: if the value is not a number
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        cleaned = value.replace(",", "").replace("£", "").strip()
        try:
            number = float(cleaned)
        except ValueError:
            raise ValueError(f"{name} must be a number, got {value!r}") from None
    else:
        raise ValueError(f"{name} must be a number, got {value!r}")

    if not math.isfinite(number):
        raise ValueError(f"{name} must be a finite number, got {value!r}")

    if integer:
        if number != int(number):
            raise ValueError(f"{name} must be a whole number, got {value!r}")
        return int(number)
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def round_half_up(value: float, places: int = 1) -> float:
    """Round to `places` decimals with halves rounded up."""
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class CompanyFacts:
    """Company facts fed to the eligibility checker."""
    incorporation_date: date
    gross_assets: Optional[float] = None
    employees: Optional[int] = None
    previous_seis_rounds: Optional[int] = None
    previous_eis_rounds: Optional[int] = None
    is_parent_company: Optional[bool] = None
    has_subsidiaries: Optional[bool] = None
    trading_activity: Optional[str] = None
    sic_codes: tuple = ()

    @classmethod
    def from_dict(cls, data: dict) -> "CompanyFacts":
        """Build from a plain dict, e.g. a form submission or JSON file.

        Raises:
            ValueError: if incorporation_date is missing or not an ISO date, or a
                numeric field is not a number
        """
        if not isinstance(data, dict):
            raise ValueError("Company details must be an object")
        incorporation_date = parse_date(data.get("incorporation_date"))
        if incorporation_date is None:
            raise ValueError(
                f"Invalid or missing incorporation_date: {data.get('incorporation_date')!r}"
            )

        sic_codes = data.get("sic_codes") or ()
        if not isinstance(sic_codes, (list, tuple)):
            sic_codes = [sic_codes]

        return cls(
            incorporation_date=incorporation_date,
            gross_assets=parse_number(data.get("gross_assets"), "gross_assets"),
            employees=parse_number(data.get("employees"), "employees", integer=True),
            previous_seis_rounds=parse_number(
                data.get("previous_seis_rounds"), "previous_seis_rounds", integer=True),
            previous_eis_rounds=parse_number(
                data.get("previous_eis_rounds"), "previous_eis_rounds", integer=True),
            is_parent_company=data.get("is_parent_company"),
            has_subsidiaries=data.get("has_subsidiaries"),
            trading_activity=data.get("trading_activity"),
            sic_codes=tuple(str(code) for code in sic_codes),
        )


@dataclass(frozen=True)
class FundingRoundFacts:
    """The funding round being assessed."""
    scheme: str
    amount_to_raise: float
    use_of_funds: Optional[str] = None
    first_time_applicant: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: dict) -> "FundingRoundFacts":
        if not isinstance(data, dict):
            raise ValueError("Funding round must be an object")
        amount = parse_number(data.get("amount_to_raise"), "amount_to_raise")
        if amount is None:
            raise ValueError("Funding round is missing amount_to_raise")
        return cls(
            scheme=str(data.get("scheme", "")).upper(),
            amount_to_raise=amount,
            use_of_funds=data.get("use_of_funds"),
            first_time_applicant=data.get("first_time_applicant"),
        )


@dataclass
class CriterionCheck:
    """One evaluated rule and the data it was evaluated on."""
    passed: bool
    value: Any = None
    threshold: Any = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class EligibilityVerdict:
    """Outcome of an eligibility check."""
    result: str
    reasons: list[str] = field(default_factory=list)
    checks_performed: dict[str, CriterionCheck] = field(default_factory=dict)

    @property
    def is_eligible(self) -> bool:
        return self.result == ELIGIBLE

    @property
    def failed_checks(self) -> list[str]:
        return [name for name, check in self.checks_performed.items() if not check.passed]

    def to_dict(self) -> dict:
        """Convert to plain data suitable for JSON storage."""
        return {
            "result": self.result,
            "reasons": list(self.reasons),
            "checks_performed": {
                name: check.to_dict() for name, check in self.checks_performed.items()
            },
        }


@dataclass
class ApplicationResult:
    """Result of checking one application in a batch."""
    name: str
    scheme: Optional[str] = None
    crn: Optional[str] = None
    verdict: Optional[EligibilityVerdict] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"name": self.name, "scheme": self.scheme, "crn": self.crn}
        if self.error:
            d["error"] = self.error
        else:
            d["verdict"] = self.verdict.to_dict()
        return d


@dataclass
class CompanyProfile:
    """Company details as registered at Companies House."""
    name: str
    crn: str
    incorporation_date: Optional[date] = None
    registered_address: Optional[str] = None
    company_status: Optional[str] = None
    company_type: Optional[str] = None
    sic_codes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = asdict(self)
        if self.incorporation_date:
            d["incorporation_date"] = self.incorporation_date.isoformat()
        return d

    def to_company_facts(self, **overrides) -> CompanyFacts:
        """Build checker input from the registered details plus caller-supplied facts."""
        values = {
            "incorporation_date": self.incorporation_date,
            "sic_codes": tuple(self.sic_codes),
        }
        values.update(overrides)
        if values["incorporation_date"] is None:
            raise ValueError(f"No incorporation date known for company {self.crn}")
        return CompanyFacts(**values)


@dataclass
class Director:
    """An active company director."""
    name: str
    role: str
    appointed_on: Optional[str] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BasicEligibility:
    """Quick SEIS/EIS screen based on registered company details only."""
    is_seis_eligible: bool
    is_eis_eligible: bool
    company_age_years: Optional[float]
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class UploadedDocument:
    """A document uploaded for an Advance Assurance application."""
    document_type: str
    file_name: Optional[str] = None
    is_verified: bool = False
