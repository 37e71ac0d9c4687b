import pytest

from investment_tracker.ingest.headers import (
    REVIEW_THRESHOLD,
    field_confidence,
    header_signature,
    normalize_header,
    resolve_headers,
    sanitize_mapping,
    suggest_column_mapping,
)


def test_normalize_header_and_signature():
    assert normalize_header("  Trade-Date  Time ") == "trade_date_time"
    assert header_signature(["Date", " Ticker Symbol "]) == "date|ticker_symbol"


def test_synonym_headers_resolve_through_guess_rules():
    resolution = resolve_headers(["when", "where", "side", "tkr", "units", "px", "ccy"])

    assert resolution.suggested == {
        "date": "when",
        "platform": "where",
        "kind": "side",
        "asset_symbol": "tkr",
        "qty": "units",
        "price": "px",
        "currency": "ccy",
    }
    assert resolution.field_confidence("kind") > 0.5
    assert resolution.missing_required() == []


def test_confidence_depends_on_resolution_tier():
    resolution = resolve_headers(["Date", "Broker", "When Traded"])

    assert resolution.confidence["date"] == pytest.approx(1.0)
    assert resolution.confidence["platform"] == pytest.approx(0.9)
    # The canonical header beats the guessed one for the suggestion...
    assert resolution.suggested["date"] == "Date"
    # ...but both columns feed the field, in column order.
    assert resolution.columns["date"] == [0, 2]


@pytest.mark.parametrize(
    "header, field",
    [
        ("Date operation", "date"),
        ("Courtier", "platform"),
        ("Operation", "kind"),
        ("Quantité", "qty"),
        ("Prix unitaire", "price"),
        ("Devise", "currency"),
        ("Frais", "fee"),
        ("Settlement Currency", "cash_currency"),
        ("Instrument Name", "asset_name"),
        ("Ticker Symbol", "asset_symbol"),
        ("Asset Class", "asset_type"),
        ("Memo", "note"),
    ],
)
def test_common_broker_vocabulary(header, field):
    resolution = resolve_headers([header])

    assert resolution.mapping == {field: header}


def test_unknown_header_stays_unmapped():
    resolution = resolve_headers(["zzz"])

    assert resolution.mapping == {}
    assert resolution.missing_required() == ["date", "kind", "platform"]
    assert resolution.missing_required(default_platform="Degiro") == ["date", "kind"]


def test_override_moves_and_unmaps_fields():
    headers = ["Date", "Value Date", "Platform", "Kind"]
    resolution = resolve_headers(headers, {"date": "Value Date", "platform": None})

    assert resolution.mapping["date"] == "Value Date"
    assert resolution.columns["date"] == [1]
    assert "platform" not in resolution.mapping
    assert resolution.missing_required() == ["platform"]
    assert resolution.field_confidence("date") == pytest.approx(0.55)
    assert resolution.field_confidence("platform") == 0.0
    assert resolution.fields_needing_review(default_platform="Degiro") == ["date"]


def test_field_confidence_scoring():
    suggested = {"date": "Date", "kind": "Type"}
    confidence = {"date": 1.0, "kind": 0.9}

    assert field_confidence("date", suggested, suggested, confidence) == 1.0
    assert field_confidence("kind", {"kind": "Side"}, suggested, confidence) == 0.55
    assert field_confidence("kind", {}, suggested, confidence) == 0.0
    assert 0.55 < REVIEW_THRESHOLD


def test_sanitize_mapping_drops_unknown_fields_and_headers():
    mapping = {"date": "Date", "kind": "Gone", "bogus": "Date", "note": None}

    assert sanitize_mapping(mapping, ["Date", "Type"]) == {"date": "Date"}


def test_suggest_column_mapping_from_text():
    suggestion = suggest_column_mapping("Date;Broker;Type;Ticker\n2024-01-01;Degiro;BUY;AAPL\n")

    assert suggestion.headers == ["Date", "Broker", "Type", "Ticker"]
    assert suggestion.signature == "date|broker|type|ticker"
    assert suggestion.mapping == {
        "date": "Date",
        "platform": "Broker",
        "kind": "Type",
        "asset_symbol": "Ticker",
    }
    assert suggestion.confidence["kind"] == pytest.approx(0.9)


def test_suggest_column_mapping_for_empty_text():
    suggestion = suggest_column_mapping("")

    assert suggestion.headers == []
    assert suggestion.signature is None
    assert suggestion.mapping == {}
