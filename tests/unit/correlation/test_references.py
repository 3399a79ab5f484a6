"""Tests for issue key extraction."""

from types import SimpleNamespace

from servicedesk_tools.correlation.references import (
    ISSUE_KEY_PATTERN,
    extract_references,
    first_reference,
)


class TestPattern:
    """Test the issue key pattern."""

    def test_matches_project_keys(self):
        assert ISSUE_KEY_PATTERN.findall("SUP-1 and WEBAPP-20456") == ["SUP-1", "WEBAPP-20456"]

    def test_requires_word_boundaries(self):
        """Test keys glued to other word characters are ignored."""
        assert ISSUE_KEY_PATTERN.findall("xSUP-1 SUP-12a") == []

    def test_rejects_lowercase_and_digits_in_project(self):
        assert ISSUE_KEY_PATTERN.findall("sup-1 S2-3") == []


class TestExtractReferences:
    """Test extraction from helpdesk tickets."""

    def test_single_key_in_subject(self, make_ticket):
        ticket = make_ticket(subject="Fix ABC-123 now")
        assert extract_references(ticket) == ("ABC-123",)

    def test_first_seen_order_without_duplicates(self, make_ticket):
        """Test duplicates collapse and order follows first appearance."""
        ticket = make_ticket(subject="See XYZ-9 and XYZ-9 again, also ABC-1")

        assert extract_references(ticket) == ("XYZ-9", "ABC-1")
        assert first_reference(ticket) == "XYZ-9"

    def test_scan_order(self, make_ticket):
        """Test subject, then description, then custom fields."""
        ticket = make_ticket(
            subject="Broken export CCC-3",
            description="<p>Related to BBB-2 and CCC-3</p>",
            custom_fields={"cf_jira": "AAA-1", "cf_other": "BBB-2"},
        )

        assert extract_references(ticket) == ("CCC-3", "BBB-2", "AAA-1")

    def test_custom_field_only(self, make_ticket):
        ticket = make_ticket(
            subject="Customer cannot log in",
            custom_fields={"cf_flag": True, "cf_count": 4, "cf_jira": "SUP-77"},
        )
        assert first_reference(ticket) == "SUP-77"

    def test_no_references(self, make_ticket):
        ticket = make_ticket(subject="Password reset", description="Please help")

        assert extract_references(ticket) == ()
        assert first_reference(ticket) is None

    def test_missing_or_odd_fields_never_raise(self):
        """Test objects with missing or wrongly typed attributes."""
        odd = SimpleNamespace(subject=None, description=42, custom_fields=["SUP-1"])
        assert extract_references(odd) == ()
        assert extract_references(object()) == ()
