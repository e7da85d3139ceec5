import pytest

from package_pricing.engine import ON_REQUEST
from package_pricing.engine.models import SelectedEvent
from package_pricing.events.aggregator import (
    MIXED_CURRENCY_WARNING,
    EventSelection,
    aggregate_events,
    events_total,
    quote_total,
    validate_events_for_submission,
)


def event(event_id, price, currency="GBP", name="Event"):
    return SelectedEvent(event_id=event_id, event_name=name, event_price=price, event_currency=currency)


def test_mixed_currency_example():
    events = [event("boat", 50, "GBP"), event("paintball", 75, "EUR")]

    assert events_total(events, "GBP") == 50

    result = aggregate_events(events, "GBP")
    assert result.total == 50
    assert [line.currency_mismatch for line in result.lines] == [False, True]
    assert result.lines[0].warning is None
    assert "EUR" in result.lines[1].warning
    assert result.warnings == [MIXED_CURRENCY_WARNING]


def test_single_currency_has_no_warning():
    result = aggregate_events([event("a", 20), event("b", 30)], "gbp")
    assert result.total == 50
    assert result.warnings == []
    assert result.excluded_count == 0


def test_zero_price_counts():
    result = aggregate_events([event("free", 0), event("b", 30)], "GBP")
    assert result.event_count == 2
    assert result.total == 30


def test_quote_total_adds_matching_events():
    events = [event("boat", 50, "GBP"), event("paintball", 75, "EUR")]
    assert quote_total(1500.0, events, "GBP") == 1550
    assert quote_total(ON_REQUEST, events, "GBP") is ON_REQUEST
    assert quote_total(None, events, "GBP") is None


def test_empty():
    assert events_total([], "GBP") == 0
    assert aggregate_events([], "GBP").warnings == []


def test_selection_limit():
    selection = EventSelection()
    for i in range(20):
        assert selection.add(event(f"e{i}", 10)).is_valid

    result = selection.add(event("e20", 10))
    assert not result.is_valid
    assert result.errors[0].field == "selectedEvents"
    assert len(selection) == 20
    assert selection.total("GBP") == 200


def test_selection_configured_limit(monkeypatch):
    from package_pricing.config.settings import reset_settings

    monkeypatch.setenv("PACKAGE_PRICING_MAX_EVENTS", "2")
    reset_settings()
    selection = EventSelection()
    selection.add(event("a", 1))
    selection.add(event("b", 1))
    assert not selection.add(event("c", 1)).is_valid


def test_selection_seed_over_limit():
    events = [event(f"e{i}", 1) for i in range(21)]
    with pytest.raises(ValueError, match="Maximum 20 events allowed per quote"):
        EventSelection(events)

    assert len(EventSelection(events[:20])) == 20


def test_selection_seed_duplicate_ids():
    with pytest.raises(ValueError):
        EventSelection([event("a", 10), event("a", 12)])


def test_selection_duplicate_and_remove():
    selection = EventSelection([event("a", 10)])
    assert not selection.add(event("a", 10)).is_valid

    removed = selection.remove("a")
    assert removed.event_id == "a"
    assert selection.remove("a") is None
    assert selection.events == ()


def test_submission_valid():
    events = [event("a", 10), {"eventId": "b", "eventName": "Karting", "eventPrice": 0, "eventCurrency": "EUR"}]
    assert validate_events_for_submission(events).is_valid


def test_submission_errors_per_field():
    events = [
        event("a", 10),
        {"eventId": "", "eventName": "Mystery", "eventPrice": 10, "eventCurrency": "GBP"},
        {"eventId": "c", "eventName": "Refund", "eventPrice": -5, "eventCurrency": "GBP"},
    ]
    result = validate_events_for_submission(events)

    assert not result.is_valid
    by_message = {e.message: e.field for e in result.errors}
    assert by_message["Event ID is required"].startswith("selectedEvents[1]")
    assert by_message["Event price must be non-negative"].startswith("selectedEvents[2]")


def test_submission_count_limit():
    events = [event(f"e{i}", 1) for i in range(21)]
    result = validate_events_for_submission(events)
    assert [e.field for e in result.errors] == ["selectedEvents"]


@pytest.mark.parametrize("currency", ["GB", "POUNDS"])
def test_submission_currency_code(currency):
    result = validate_events_for_submission([event("a", 1, currency)])
    assert not result.is_valid
