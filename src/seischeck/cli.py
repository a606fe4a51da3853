"""Command-line interface for seischeck."""

import argparse
import asyncio
import csv
import json
import logging
import sys
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Optional

from .checker import EligibilityChecker
from .companies_house import (
    CompaniesHouseAPI,
    check_basic_eligibility,
    format_company_data,
    get_active_directors,
    normalize_company_number,
)
from .documents import completion_stats, missing_documents
from .lookup import DEFAULT_MAX_CONCURRENT, lookup_companies
from .models import (
    ApplicationResult,
    CompanyFacts,
    CompanyProfile,
    FundingRoundFacts,
    UploadedDocument,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging."""
    if quiet:
        level = logging.ERROR
    else:
        level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()]
    )
    # Quiet down HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def _load_json_list(path: Path, key: str) -> list:
    """Load a JSON file holding either a list or an object with the list under `key`."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return data
    elif isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    else:
        raise ValueError(f"JSON file must be a list or have an '{key}' list")


def load_applications(path: Path) -> list[dict]:
    """Load applications to check.

    Each entry holds "company" and "round" objects and optionally "crn" and "name".
    """
    return _load_json_list(path, "applications")


def load_documents(path: Path) -> list[UploadedDocument]:
    """Load the uploaded documents list for the checklist command."""
    return [
        UploadedDocument(
            document_type=item["document_type"],
            file_name=item.get("file_name"),
            is_verified=bool(item.get("is_verified", False)),
        )
        for item in _load_json_list(path, "documents")
    ]


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def fixed_clock(as_of: date):
    """Clock pinned to midnight UTC on the given date."""
    pinned = datetime.combine(as_of, time.min, tzinfo=timezone.utc)
    return lambda: pinned


def process_application(
    entry: dict,
    checker: EligibilityChecker,
    profiles: Optional[dict[str, Optional[CompanyProfile]]] = None,
    index: int = 1
) -> ApplicationResult:
    """Check a single application, filling company facts from Companies House.

    Args:
        entry: Application dict from the applications file
        checker: Eligibility checker to run
        profiles: Company profiles keyed by normalised company number
        index: Position in the batch, used to name unnamed entries

    Returns:
        ApplicationResult with either a verdict or an error
    """
    if not isinstance(entry, dict):
        return ApplicationResult(
            name=f"Application {index}",
            error=f"Application entry must be an object, got {type(entry).__name__}"
        )

    company_data = entry.get("company") or {}
    round_data = entry.get("round") or {}
    crn = entry.get("crn")
    name = entry.get("name")

    if not isinstance(company_data, dict) or not isinstance(round_data, dict):
        return ApplicationResult(
            name=name or f"Application {index}",
            crn=crn,
            error='Application "company" and "round" must be objects'
        )
    company_data = dict(company_data)

    if crn:
        crn = normalize_company_number(crn)
        profile = (profiles or {}).get(crn)
        if profile:
            name = name or profile.name
            if not company_data.get("incorporation_date"):
                company_data["incorporation_date"] = profile.incorporation_date
            if not company_data.get("sic_codes"):
                company_data["sic_codes"] = profile.sic_codes
        elif not company_data.get("incorporation_date"):
            return ApplicationResult(
                name=name or crn,
                scheme=round_data.get("scheme"),
                crn=crn,
                error="Company not found at Companies House"
            )

    name = name or f"Application {index}"

    try:
        company = CompanyFacts.from_dict(company_data)
        funding_round = FundingRoundFacts.from_dict(round_data)
        verdict = checker.check_eligibility(company, funding_round)
    except ValueError as e:
        # Includes InvalidSchemeError
        logger.debug(f"{name}: {e}")
        return ApplicationResult(name=name, scheme=round_data.get("scheme"), crn=crn, error=str(e))

    return ApplicationResult(name=name, scheme=funding_round.scheme, crn=crn, verdict=verdict)


def write_csv(results: list[ApplicationResult], output_path: Path):
    """Write one row per check performed to a CSV file."""
    fieldnames = [
        "application", "crn", "scheme", "result",
        "check", "passed", "value", "threshold", "notes"
    ]

    rows = []
    for result in results:
        if result.error:
            continue

        verdict = result.verdict
        for check_name, check in verdict.checks_performed.items():
            rows.append({
                "application": result.name,
                "crn": result.crn or "",
                "scheme": result.scheme,
                "result": verdict.result,
                "check": check_name,
                "passed": check.passed,
                "value": "" if check.value is None else check.value,
                "threshold": "" if check.threshold is None else check.threshold,
                "notes": check.notes or "",
            })

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)

    return len(rows)


def write_json(results: list[ApplicationResult], output_path: Path):
    """Write results to JSON file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False)


def run_check(args) -> int:
    try:
        applications = load_applications(args.config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError) as e:
        print(f"Error loading applications: {e}", file=sys.stderr)
        return 1

    if not applications:
        print("Error: No applications found in file.", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"\n{'='*70}")
        print("SEIS/EIS ELIGIBILITY CHECK")
        print(f"{'='*70}")
        print(f"Checking {len(applications)} application(s)")

    checker = EligibilityChecker(fixed_clock(args.as_of) if args.as_of else None)

    profiles = {}
    crns = [entry["crn"] for entry in applications if isinstance(entry, dict) and entry.get("crn")]
    if crns:
        if not args.quiet:
            print(f"Looking up {len(crns)} company number(s) at Companies House...")
        profiles = asyncio.run(lookup_companies(crns, max_concurrent=args.max_concurrent))

    results = []
    for i, entry in enumerate(applications, 1):
        result = process_application(entry, checker, profiles, index=i)
        results.append(result)

        if args.quiet:
            continue
        if result.error:
            print(f"\n[!] {result.name}: {result.error}")
        else:
            print(f"\n[{result.verdict.result.upper()}] {result.name} ({result.scheme})")
            for reason in result.verdict.reasons:
                print(f"    - {reason}")

    output_path = args.output
    if args.format == "json":
        if output_path.suffix != ".json":
            output_path = output_path.with_suffix(".json")
        write_json(results, output_path)
    else:
        if output_path.suffix != ".csv":
            output_path = output_path.with_suffix(".csv")
        write_csv(results, output_path)

    if not args.quiet:
        print(f"\n{'='*70}")
        print("COMPLETE")
        print(f"{'='*70}")
        checked = [r for r in results if not r.error]
        print(f"Checked: {len(checked)}/{len(results)}")
        for outcome in ("eligible", "possibly_eligible", "not_eligible"):
            count = sum(1 for r in checked if r.verdict.result == outcome)
            print(f"{outcome.replace('_', ' ').capitalize()}: {count}")
        print(f"Output: {output_path}")

    return 0 if all(not r.error for r in results) else 1


def run_lookup(args) -> int:
    api = CompaniesHouseAPI()
    status = 0
    reports = []

    for crn in args.crns:
        data = api.get_company(crn)
        if not data:
            print(f"[!] {crn}: company not found", file=sys.stderr)
            status = 1
            continue

        profile = format_company_data(data)
        directors = get_active_directors(api.get_officers(crn))
        screen = check_basic_eligibility(profile)

        if args.json:
            reports.append({
                "company": profile.to_dict(),
                "directors": [d.to_dict() for d in directors],
                "basic_eligibility": screen.to_dict(),
            })
            continue

        print(f"\n{profile.name} ({profile.crn})")
        print(f"    Status: {profile.company_status}, Type: {profile.company_type}")
        age = "age unknown" if screen.company_age_years is None else f"{screen.company_age_years} years"
        print(f"    Incorporated: {profile.incorporation_date} ({age})")
        print(f"    Address: {profile.registered_address}")
        print(f"    SIC codes: {', '.join(profile.sic_codes) or 'none'}")
        print(f"    Directors: {', '.join(d.name for d in directors) or 'none'}")
        print(f"    SEIS age screen: {'pass' if screen.is_seis_eligible else 'fail'}")
        print(f"    EIS age screen: {'pass' if screen.is_eis_eligible else 'fail'}")
        for issue in screen.issues:
            print(f"    [!] {issue}")

    if args.json:
        print(json.dumps(reports, indent=2, ensure_ascii=False))

    return status


def run_documents(args) -> int:
    try:
        documents = load_documents(args.file)
    except (FileNotFoundError, json.JSONDecodeError, ValueError, KeyError) as e:
        print(f"Error loading documents: {e}", file=sys.stderr)
        return 1

    stats = completion_stats(documents)
    missing = missing_documents(documents)

    print(f"Uploaded: {stats['uploaded']}/{stats['total']}")
    print(f"Verified: {stats['verified']}/{stats['total']}")
    if missing:
        print("Missing:")
        for req in missing:
            print(f"    - {req.label}: {req.description}")
        return 1

    print("All required documents uploaded")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seischeck",
        description="Check SEIS/EIS eligibility for UK companies"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (minimal output)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check a batch of applications")
    check.add_argument(
        "-c", "--config",
        type=Path,
        required=True,
        help="Path to JSON file with applications to check"
    )
    check.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("output/eligibility.csv"),
        help="Output file path (default: output/eligibility.csv)"
    )
    check.add_argument(
        "--format",
        choices=["csv", "json"],
        default="csv",
        help="Output format (default: csv)"
    )
    check.add_argument(
        "--as-of",
        type=date.fromisoformat,
        help="Assess company age as of this date (YYYY-MM-DD) instead of today"
    )
    check.add_argument(
        "--max-concurrent",
        type=positive_int,
        default=DEFAULT_MAX_CONCURRENT,
        help=f"Concurrent Companies House requests (default: {DEFAULT_MAX_CONCURRENT})"
    )

    lookup = subparsers.add_parser("lookup", help="Look up companies at Companies House")
    lookup.add_argument("crns", nargs="+", help="Company registration number(s)")
    lookup.add_argument("--json", action="store_true", help="Print JSON instead of text")

    documents = subparsers.add_parser("documents", help="Check the required documents list")
    documents.add_argument("file", type=Path, help="JSON file listing uploaded documents")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.quiet)

    if args.command == "check":
        return run_check(args)
    elif args.command == "lookup":
        return run_lookup(args)
    return run_documents(args)


if __name__ == "__main__":
    sys.exit(main())
