"""Tests for the command-line interface."""

import argparse
import csv
import json
from datetime import date

import pytest

from seischeck.checker import EligibilityChecker
from seischeck.cli import (
    fixed_clock,
    load_applications,
    load_documents,
    main,
    positive_int,
    process_application,
    write_csv,
)
from seischeck.documents import REQUIRED_DOCUMENT_TYPES
from seischeck.models import CompanyProfile

AS_OF = date(2025, 6, 1)

APPLICATION = {
    "name": "Acme Robotics",
    "company": {
        "incorporation_date": "2024-09-15",
        "gross_assets": 50000,
        "employees": 3,
    },
    "round": {"scheme": "SEIS", "amount_to_raise": 100000},
}


@pytest.fixture
def checker():
    return EligibilityChecker(fixed_clock(AS_OF))


class TestLoadApplications:
    def test_list(self, tmp_path):
        path = tmp_path / "apps.json"
        path.write_text(json.dumps([APPLICATION]))
        assert load_applications(path) == [APPLICATION]

    def test_wrapped(self, tmp_path):
        path = tmp_path / "apps.json"
        path.write_text(json.dumps({"applications": [APPLICATION]}))
        assert len(load_applications(path)) == 1

    def test_bad_shape(self, tmp_path):
        path = tmp_path / "apps.json"
        path.write_text(json.dumps({"companies": []}))
        with pytest.raises(ValueError):
            load_applications(path)

    def test_wrapped_not_a_list(self, tmp_path):
        path = tmp_path / "apps.json"
        path.write_text(json.dumps({"applications": "Acme"}))
        with pytest.raises(ValueError):
            load_applications(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_applications(tmp_path / "nope.json")

    def test_load_documents(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps({"documents": [{"document_type": "accounts", "is_verified": True}]}))
        documents = load_documents(path)
        assert documents[0].document_type == "accounts"
        assert documents[0].is_verified


class TestProcessApplication:
    def test_checks_application(self, checker):
        result = process_application(APPLICATION, checker)
        assert result.error is None
        assert result.name == "Acme Robotics"
        assert result.scheme == "SEIS"
        assert result.verdict.result == "possibly_eligible"

    def test_invalid_scheme_recorded(self, checker):
        entry = dict(APPLICATION, round={"scheme": "FOO", "amount_to_raise": 1})
        result = process_application(entry, checker)
        assert result.verdict is None
        assert "Invalid scheme" in result.error

    def test_string_amount_is_parsed(self, checker):
        entry = dict(APPLICATION, round={"scheme": "SEIS", "amount_to_raise": "100000"})
        result = process_application(entry, checker)
        assert result.error is None
        assert result.verdict.checks_performed["investment_amount"].value == 100000

    def test_non_numeric_amount_recorded(self, checker):
        entry = dict(APPLICATION, round={"scheme": "SEIS", "amount_to_raise": "lots"})
        result = process_application(entry, checker)
        assert result.verdict is None
        assert "amount_to_raise must be a number" in result.error

    @pytest.mark.parametrize("entry", ["Acme", 42, None, ["Acme"]])
    def test_non_object_entry_recorded(self, checker, entry):
        result = process_application(entry, checker, index=2)
        assert result.name == "Application 2"
        assert result.verdict is None
        assert "must be an object" in result.error

    def test_non_object_company_recorded(self, checker):
        entry = dict(APPLICATION, company="Acme Robotics")
        result = process_application(entry, checker)
        assert result.name == "Acme Robotics"
        assert "must be objects" in result.error

    def test_unnamed_entry(self, checker):
        entry = {"company": APPLICATION["company"], "round": APPLICATION["round"]}
        assert process_application(entry, checker, index=3).name == "Application 3"

    def test_fills_facts_from_companies_house(self, checker):
        profile = CompanyProfile(
            name="ACME ROBOTICS LTD",
            crn="12345678",
            incorporation_date=date(2018, 1, 1),
            sic_codes=["62012"],
        )
        entry = {
            "crn": "12345678",
            "company": {"employees": 40},
            "round": {"scheme": "eis", "amount_to_raise": 2000000},
        }
        result = process_application(entry, checker, {"12345678": profile})
        assert result.name == "ACME ROBOTICS LTD"
        age = result.verdict.checks_performed["company_age"]
        # Knowledge-intensive SIC code lifts the limit to 10 years
        assert age.threshold == 10
        assert age.passed

    def test_company_not_found(self, checker):
        entry = {"crn": "404", "round": {"scheme": "SEIS", "amount_to_raise": 1}}
        result = process_application(entry, checker, {"00000404": None})
        assert result.error == "Company not found at Companies House"
        assert result.crn == "00000404"


class TestWriteCsv:
    def test_one_row_per_check(self, checker, tmp_path):
        results = [
            process_application(APPLICATION, checker),
            process_application(dict(APPLICATION, round={"scheme": "FOO", "amount_to_raise": 1}), checker),
        ]
        output = tmp_path / "out" / "report.csv"
        assert write_csv(results, output) == 7

        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["check"] == "company_age"
        assert rows[0]["result"] == "possibly_eligible"


class TestMain:
    def test_check_json(self, tmp_path):
        config = tmp_path / "apps.json"
        config.write_text(json.dumps([APPLICATION, dict(APPLICATION, name="Late", round={"scheme": "BOTH", "amount_to_raise": 200000})]))
        output = tmp_path / "report.json"

        code = main(["-q", "check", "-c", str(config), "-o", str(output),
                     "--format", "json", "--as-of", "2025-06-01"])

        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data[0]["verdict"]["result"] == "possibly_eligible"
        assert data[1]["verdict"]["reasons"] == ["Investment amount exceeds £150,000 SEIS limit"]
        assert "seis.investment_amount" in data[1]["verdict"]["checks_performed"]

    def test_check_with_bad_entry(self, tmp_path):
        config = tmp_path / "apps.json"
        config.write_text(json.dumps([APPLICATION, {"company": {}, "round": {}}]))
        output = tmp_path / "report.csv"

        code = main(["-q", "check", "-c", str(config), "-o", str(output), "--as-of", "2025-06-01"])

        assert code == 1
        assert output.exists()

    def test_check_continues_past_malformed_entries(self, tmp_path):
        entries = [
            APPLICATION,
            dict(APPLICATION, name="String amount", round={"scheme": "SEIS", "amount_to_raise": "100000"}),
            dict(APPLICATION, name="Bad amount", round={"scheme": "SEIS", "amount_to_raise": "lots"}),
            "oops",
        ]
        config = tmp_path / "apps.json"
        config.write_text(json.dumps(entries))
        output = tmp_path / "report.json"

        code = main(["-q", "check", "-c", str(config), "-o", str(output),
                     "--format", "json", "--as-of", "2025-06-01"])

        assert code == 1
        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data) == 4
        assert data[0]["verdict"]["result"] == "possibly_eligible"
        assert data[1]["verdict"]["result"] == "possibly_eligible"
        assert "amount_to_raise" in data[2]["error"]
        assert data[3]["name"] == "Application 4"
        assert "must be an object" in data[3]["error"]

    def test_max_concurrent_must_be_positive(self, tmp_path):
        config = tmp_path / "apps.json"
        config.write_text(json.dumps([APPLICATION]))
        with pytest.raises(SystemExit) as exc:
            main(["-q", "check", "-c", str(config), "--max-concurrent", "0"])
        assert exc.value.code == 2

    def test_positive_int(self):
        assert positive_int("3") == 3
        with pytest.raises(argparse.ArgumentTypeError):
            positive_int("0")
        with pytest.raises(argparse.ArgumentTypeError):
            positive_int("-2")

    def test_check_missing_config(self, tmp_path):
        assert main(["-q", "check", "-c", str(tmp_path / "missing.json")]) == 1

    def test_documents(self, tmp_path, capsys):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps([{"document_type": t} for t in REQUIRED_DOCUMENT_TYPES]))
        assert main(["documents", str(path)]) == 0
        assert "All required documents uploaded" in capsys.readouterr().out

    def test_documents_missing(self, tmp_path, capsys):
        path = tmp_path / "docs.json"
        path.write_text(json.dumps([{"document_type": "accounts"}]))
        assert main(["documents", str(path)]) == 1
        assert "Business Plan" in capsys.readouterr().out

    def test_lookup_json(self, monkeypatch, capsys):
        class FakeAPI:
            def get_company(self, crn):
                if crn == "404":
                    return None
                return {
                    "company_name": "ACME LTD",
                    "company_number": "00000001",
                    "company_status": "active",
                    "company_type": "ltd",
                    "date_of_creation": "2024-09-15",
                }

            def get_officers(self, crn):
                return [{"name": "SMITH, Jane", "officer_role": "director"}]

        monkeypatch.setattr("seischeck.cli.CompaniesHouseAPI", FakeAPI)

        assert main(["lookup", "1", "404", "--json"]) == 1
        out = capsys.readouterr().out
        reports = json.loads(out)
        assert reports[0]["company"]["name"] == "ACME LTD"
        assert reports[0]["directors"][0]["name"] == "SMITH, Jane"
