"""Tests for batch acquisition strategies."""

from unittest.mock import MagicMock

import pytest

from servicedesk_tools.correlation.acquisition import (
    AcquisitionStrategy,
    TierResult,
    acquire_batch,
    default_strategies,
    matching_status_codes,
    recent_tickets,
    status_codes,
    status_search,
)
from servicedesk_tools.exceptions import BatchAcquisitionError
from servicedesk_tools.integrations.models import ApiResponse, StatusChoice


def _strategy(name, result, accept_empty=True):
    return AcquisitionStrategy(name=name, fetch=lambda: result, accept_empty=accept_empty)


def _failing(name, message="boom"):
    return _strategy(name, TierResult(tier=name, error=message))


class TestTierResult:
    """Test tier result construction."""

    def test_from_successful_response(self, make_ticket):
        ticket = make_ticket(1)
        result = TierResult.from_response("t", ApiResponse(status=200, data=[ticket]))

        assert result.success
        assert result.tickets == (ticket,)

    def test_from_failed_response(self):
        result = TierResult.from_response("t", ApiResponse(status=500, error="down"))

        assert not result.success
        assert result.error == "down"
        assert result.tickets == ()


class TestAcquireBatch:
    """Test ordered fallback between strategies."""

    def test_first_tier_wins(self, make_ticket):
        tickets = (make_ticket(1),)
        second = MagicMock()

        batch = acquire_batch(
            [
                _strategy("one", TierResult(tier="one", tickets=tickets)),
                AcquisitionStrategy(name="two", fetch=second),
            ]
        )

        assert batch.tickets == tickets
        assert batch.tier == "one"
        second.assert_not_called()

    def test_falls_through_on_error(self, make_ticket):
        """Test a failing tier hands over to the next one."""
        tickets = (make_ticket(1),)

        batch = acquire_batch(
            [
                _failing("one", "HTTP 400"),
                _strategy("two", TierResult(tier="two", tickets=tickets)),
            ]
        )

        assert batch.tier == "two"
        assert batch.tickets == tickets
        assert [a.tier for a in batch.attempts] == ["one", "two"]

    def test_exception_treated_as_failure(self, make_ticket):
        """Test a raising fetch counts as a failed tier."""

        def explode():
            raise RuntimeError("kaput")

        batch = acquire_batch(
            [
                AcquisitionStrategy(name="one", fetch=explode),
                _strategy("two", TierResult(tier="two", tickets=(make_ticket(1),))),
            ]
        )

        assert batch.tier == "two"
        assert batch.attempts[0].error == "kaput"

    def test_accepted_empty_stops(self):
        """Test an empty success ends acquisition when accepted."""
        later = MagicMock()

        batch = acquire_batch(
            [
                _strategy("one", TierResult(tier="one"), accept_empty=True),
                AcquisitionStrategy(name="two", fetch=later),
            ]
        )

        assert batch.tickets == ()
        assert batch.tier == "one"
        later.assert_not_called()

    def test_rejected_empty_continues(self, make_ticket):
        tickets = (make_ticket(3),)

        batch = acquire_batch(
            [
                _strategy("one", TierResult(tier="one"), accept_empty=False),
                _strategy("two", TierResult(tier="two", tickets=tickets)),
            ]
        )

        assert batch.tier == "two"

    def test_empty_success_beats_later_errors(self):
        """Test an earlier empty success means no error is raised."""
        batch = acquire_batch(
            [
                _strategy("one", TierResult(tier="one"), accept_empty=False),
                _failing("two"),
            ]
        )

        assert batch.tickets == ()
        assert batch.tier == "one"

    def test_all_tiers_fail(self):
        """Test exhaustion raises with every attempt recorded."""
        with pytest.raises(BatchAcquisitionError) as exc_info:
            acquire_batch([_failing("one", "a"), _failing("two", "b"), _failing("three", "c")])

        error = exc_info.value
        assert [a.tier for a in error.attempts] == ["one", "two", "three"]
        assert str(error) == "All ticket acquisition tiers failed (one: a; two: b; three: c)"


class TestMatchingStatusCodes:
    """Test status label matching."""

    def test_exact_before_partial(self):
        choices = [
            StatusChoice(id=9, label="Escalated With Development"),
            StatusChoice(id=6, label="with development"),
            StatusChoice(id=2, label="Open"),
        ]
        assert matching_status_codes(choices, "With Development") == [6, 9]

    def test_no_match(self):
        assert matching_status_codes([StatusChoice(id=2, label="Open")], "Pending") == []

    def test_blank_label(self):
        assert matching_status_codes([StatusChoice(id=2, label="Open")], "  ") == []


class TestStatusSearch:
    """Test the search tier."""

    def test_query(self, make_ticket):
        helpdesk = MagicMock()
        helpdesk.search_tickets.return_value = ApiResponse(status=200, data=[make_ticket(1)])

        strategy = status_search(helpdesk, "With Development")
        result = strategy.fetch()

        helpdesk.search_tickets.assert_called_once_with('status:"With Development"')
        assert strategy.accept_empty is True
        assert len(result.tickets) == 1

    def test_error(self):
        helpdesk = MagicMock()
        helpdesk.search_tickets.return_value = ApiResponse(status=400, error="bad query")

        result = status_search(helpdesk, "With Development").fetch()

        assert result.error == "bad query"


class TestStatusCodes:
    """Test the status code tier."""

    def test_discovered_codes_tried_first(self, make_ticket):
        """Test schema codes precede fallback codes."""
        helpdesk = MagicMock()
        helpdesk.get_status_choices.return_value = [StatusChoice(id=12, label="With Development")]
        helpdesk.get_tickets.side_effect = [
            ApiResponse(status=200, data=[]),
            ApiResponse(status=200, data=[make_ticket(5)]),
        ]

        result = status_codes(helpdesk, "With Development", fallback_codes=[6, 12, 7]).fetch()

        calls = [c.args for c in helpdesk.get_tickets.call_args_list]
        assert calls == [(1, 100, {"status": 12}), (1, 100, {"status": 6})]
        assert [t.id for t in result.tickets] == [5]

    def test_all_empty_is_empty_success(self):
        helpdesk = MagicMock()
        helpdesk.get_status_choices.return_value = []
        helpdesk.get_tickets.return_value = ApiResponse(status=200, data=[])

        strategy = status_codes(helpdesk, "With Development", fallback_codes=[6, 7])
        result = strategy.fetch()

        assert result.success
        assert result.tickets == ()
        assert strategy.accept_empty is False

    def test_all_errors(self):
        helpdesk = MagicMock()
        helpdesk.get_status_choices.return_value = []
        helpdesk.get_tickets.return_value = ApiResponse(status=500, error="down")

        result = status_codes(helpdesk, "With Development", fallback_codes=[6, 7]).fetch()

        assert result.error == "status 6: down; status 7: down"

    def test_no_candidates(self):
        helpdesk = MagicMock()
        helpdesk.get_status_choices.return_value = []

        result = status_codes(helpdesk, "With Development").fetch()

        assert result.error == "No candidate status codes"
        helpdesk.get_tickets.assert_not_called()


class TestRecentTickets:
    """Test the newest-tickets tier."""

    def test_ordering_filters(self, make_ticket):
        helpdesk = MagicMock()
        helpdesk.get_tickets.return_value = ApiResponse(status=200, data=[make_ticket(1)])

        result = recent_tickets(helpdesk, page_size=30).fetch()

        helpdesk.get_tickets.assert_called_once_with(
            1, 30, {"order_by": "created_at", "order_type": "desc"}
        )
        assert result.tier == "recent_tickets"
        assert len(result.tickets) == 1


class TestDefaultStrategies:
    """Test the standard tier order."""

    def test_order(self):
        strategies = default_strategies(MagicMock(), "With Development", [6, 7, 8])
        assert [s.name for s in strategies] == ["status_search", "status_codes", "recent_tickets"]

    def test_search_failure_falls_back_to_codes(self, make_ticket):
        """Test a rejected search is followed by the code listing."""
        helpdesk = MagicMock()
        helpdesk.search_tickets.return_value = ApiResponse(status=400, error="invalid")
        helpdesk.get_status_choices.return_value = []
        helpdesk.get_tickets.return_value = ApiResponse(status=200, data=[make_ticket(8)])

        batch = acquire_batch(default_strategies(helpdesk, "With Development", [6]))

        assert batch.tier == "status_codes"
        assert [t.id for t in batch.tickets] == [8]
