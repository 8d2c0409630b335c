import pytest

from buyback.services.prices import parse_price


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("120", 120.0),
        ("$1,234.50", 1234.5),
        ("€99", 99.0),
        ("£ 45.10", 45.1),
        (".5", 0.5),
        ("120 est", 120.0),
        ("0", 0.0),
        ("  300  ", 300.0),
        ("1e3", 1000.0),
        ("2.5E2", 250.0),
        ("1e", 1.0),
    ],
)
def test_parse_price_numbers(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", "#REF!", "#N/A", "#VALUE!", "#DIV/0!", "#ERROR!", "#NAME?", "N/A", "call", "-5", "$-20", "1e999"],
)
def test_parse_price_missing(raw):
    assert parse_price(raw) is None


def test_parse_price_error_marker_case_insensitive():
    assert parse_price("#ref!") is None
