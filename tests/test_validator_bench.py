import json
from pathlib import Path

import pytest

from n8nforge.structural.validator import validate_workflow

FIXTURES = Path(__file__).parent / "fixtures" / "validator"


def _messages(issues):
    return [i.message for i in issues]


@pytest.mark.parametrize("case_dir", sorted(FIXTURES.glob("V*")), ids=lambda p: p.name)
def test_validator_bench(case_dir: Path):
    """
    Validator benchmark:
    - load workflow.json
    - load expect.json
    - run validate_workflow
    - check the asserted errors / warnings / suggestions
    """
    wf_file = case_dir / "workflow.json"
    exp_file = case_dir / "expect.json"

    assert wf_file.exists(), f"Missing workflow.json in {case_dir}"
    assert exp_file.exists(), f"Missing expect.json in {case_dir}"

    with wf_file.open("r", encoding="utf-8") as f:
        workflow = json.load(f)

    with exp_file.open("r", encoding="utf-8") as f:
        expect = json.load(f)

    report = validate_workflow(workflow)
    asserts = (expect.get("assert") or {})
    errors = _messages(report.errors)
    warnings = _messages(report.warnings)

    # ---- valid ----
    if "valid" in asserts:
        assert report.valid == bool(asserts["valid"]), f"{case_dir.name}: valid={report.valid}, errors={errors}"

    # ---- counts ----
    if "error_count" in asserts:
        assert len(errors) == asserts["error_count"], f"{case_dir.name}: errors={errors}"
    if "warning_count" in asserts:
        assert len(warnings) == asserts["warning_count"], f"{case_dir.name}: warnings={warnings}"
    if "suggestion_count" in asserts:
        assert len(report.suggestions) == asserts["suggestion_count"], \
            f"{case_dir.name}: suggestions={report.suggestions}"

    # ---- substrings ----
    for expected in asserts.get("errors_contain", []):
        assert any(expected in m for m in errors), f"{case_dir.name}: no error containing {expected!r} in {errors}"
    for expected in asserts.get("warnings_contain", []):
        assert any(expected in m for m in warnings), \
            f"{case_dir.name}: no warning containing {expected!r} in {warnings}"
    for expected in asserts.get("suggestions_contain", []):
        assert any(expected in s for s in report.suggestions), \
            f"{case_dir.name}: no suggestion containing {expected!r} in {report.suggestions}"

    # ---- fields ----
    fields = [e.field for e in report.errors]
    for expected in asserts.get("error_fields", []):
        assert expected in fields, f"{case_dir.name}: no error on field {expected!r} (fields={fields})"

    # valid <=> no errors, always
    assert report.valid == (not report.errors), f"{case_dir.name}: valid flag out of sync with errors"
