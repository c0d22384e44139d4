"""Tests for the fiscal invoice engine.

Tests cover:
- Invoice number parsing and ordering (including property-based laws)
- Range membership and the upper-bound check
- Sequence advancement and correlative exhaustion
- Validation against the previous number and the active CAI
- Totals and the invoice-generation gate
"""

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from facturahn.services.fiscal_engine import (
    Comparison,
    ExpiredAuthorizationError,
    FormatError,
    InvoiceNumber,
    InvoiceNumberExhaustedError,
    LineItem,
    NoAuthorizationError,
    OutOfRangeError,
    RangeAuthorization,
    SequenceError,
    cai_expiration_notice,
    compare_invoice_numbers,
    compute_totals,
    is_invoice_number_valid,
    is_valid_cai,
    is_within_range,
    next_invoice_number,
    parse_invoice_number,
    should_disable_invoice_generation,
    validate_against_active_authorization,
    validate_authorization_range,
    validate_next_invoice_number,
)

TODAY = date(2026, 3, 15)

invoice_numbers = st.builds(
    lambda *groups: InvoiceNumber(*groups).format(),
    st.integers(0, 999),
    st.integers(0, 999),
    st.integers(0, 99),
    st.integers(0, 99_999_999),
)


def _item(description="Martillo", quantity=1, unit_cost=10.0, discount=0.0):
    return LineItem(description, quantity, unit_cost, discount)


def _authorization(expiration=TODAY + timedelta(days=30)):
    return RangeAuthorization("001-001-01-00000001", "001-001-01-00000099", expiration)


# ============================================================================
# PARSING AND ORDERING
# ============================================================================


class TestParseInvoiceNumber:
    def test_parses_groups_as_integers(self):
        assert parse_invoice_number("001-002-03-00000042") == InvoiceNumber(1, 2, 3, 42)

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "1-1-1-1",
            "001-002-03-0000004",
            "001-002-03-000000042",
            "001/002/03/00000042",
            "AAA-002-03-00000042",
            " 001-002-03-00000042",
        ],
    )
    def test_rejects_malformed_values(self, value):
        result = parse_invoice_number(value)

        assert isinstance(result, FormatError)
        assert "NNN-NNN-NN-NNNNNNNN" in result.message

    def test_checked_parse_raises(self):
        with pytest.raises(ValueError):
            InvoiceNumber.parse("001-002-03-123")

    @given(invoice_numbers)
    def test_format_round_trips(self, value):
        assert parse_invoice_number(value).format() == value


class TestCompareInvoiceNumbers:
    def test_most_significant_group_wins(self):
        assert compare_invoice_numbers("002-000-00-00000000", "001-999-99-99999999") is Comparison.GREATER
        assert compare_invoice_numbers("001-001-01-99999999", "001-001-02-00000000") is Comparison.LESS

    def test_nine_digit_correlative_is_invalid(self):
        result = compare_invoice_numbers("003-004-01-123456789", "003-004-01-12345678")

        assert isinstance(result, FormatError)

    @given(invoice_numbers)
    def test_reflexive(self, a):
        assert compare_invoice_numbers(a, a) is Comparison.EQUAL

    @given(invoice_numbers, invoice_numbers)
    def test_antisymmetric(self, a, b):
        forward = compare_invoice_numbers(a, b)
        backward = compare_invoice_numbers(b, a)

        assert (forward is Comparison.GREATER) == (backward is Comparison.LESS)
        assert (forward is Comparison.EQUAL) == (backward is Comparison.EQUAL)

    @given(invoice_numbers, invoice_numbers, invoice_numbers)
    def test_transitive(self, a, b, c):
        if (
            compare_invoice_numbers(a, b) is not Comparison.GREATER
            and compare_invoice_numbers(b, c) is not Comparison.GREATER
        ):
            assert compare_invoice_numbers(a, c) is not Comparison.GREATER

    @given(invoice_numbers, invoice_numbers)
    def test_agrees_with_tuple_order(self, a, b):
        expected = InvoiceNumber.parse(a) < InvoiceNumber.parse(b)
        assert (compare_invoice_numbers(a, b) is Comparison.LESS) == expected


# ============================================================================
# RANGES
# ============================================================================


class TestRanges:
    def test_within_range(self):
        assert is_within_range("002-001-01-12345678", "000-000-00-00000000", "003-000-01-12345678")

    def test_bounds_are_inclusive(self):
        assert is_within_range("001-001-01-00000001", "001-001-01-00000001", "001-001-01-00000099")
        assert is_within_range("001-001-01-00000099", "001-001-01-00000001", "001-001-01-00000099")

    def test_outside_range(self):
        assert not is_within_range("001-001-01-00000100", "001-001-01-00000001", "001-001-01-00000099")
        assert not is_within_range("001-001-01-00000000", "001-001-01-00000001", "001-001-01-00000099")

    def test_malformed_values_are_never_in_range(self):
        assert not is_within_range("001-001-01-1", "001-001-01-00000001", "001-001-01-00000099")
        assert not is_within_range("001-001-01-00000005", "bad", "001-001-01-00000099")

    def test_upper_bound_short_circuits_on_smaller_group(self):
        # Lower groups above the limit do not matter once a higher group is smaller.
        assert is_invoice_number_valid("002-999-99-99999999", "003-000-00-00000000")
        assert not is_invoice_number_valid("003-000-00-00000001", "003-000-00-00000000")
        assert is_invoice_number_valid("003-000-00-00000000", "003-000-00-00000000")


# ============================================================================
# SEQUENCE
# ============================================================================


class TestNextInvoiceNumber:
    def test_increments_correlative(self):
        assert next_invoice_number("000-000-00-00000001") == "000-000-00-00000002"

    def test_keeps_padding(self):
        assert next_invoice_number("010-002-01-00000999") == "010-002-01-00001000"

    def test_accepts_parsed_number(self):
        assert next_invoice_number(InvoiceNumber(1, 1, 1, 9)) == "001-001-01-00000010"

    def test_rejects_malformed_input(self):
        with pytest.raises(ValueError):
            next_invoice_number("001-001-01-12")

    def test_exhausted_correlative_does_not_carry(self):
        with pytest.raises(InvoiceNumberExhaustedError):
            next_invoice_number("001-001-01-99999999")


class TestValidateNextInvoiceNumber:
    def test_smaller_allowed_without_previous_invoice(self):
        assert validate_next_invoice_number(
            "003-000-01-12345678", "002-001-01-12345678", "003-000-01-12345678", False
        ) is True

    def test_equal_rejected_when_last_invoice_exists(self):
        result = validate_next_invoice_number(
            "003-004-01-12345678", "003-004-01-12345678", "003-004-01-12345678", True
        )

        assert isinstance(result, SequenceError)
        assert "mayor" in result.message

    def test_smaller_rejected_when_last_invoice_exists(self):
        result = validate_next_invoice_number(
            "001-001-01-00000010", "001-001-01-00000009", "001-001-01-00000099", True
        )

        assert isinstance(result, SequenceError)
        assert "menor" in result.message

    def test_greater_accepted(self):
        assert validate_next_invoice_number(
            "001-001-01-00000010", "001-001-01-00000011", "001-001-01-00000099", True
        ) is True

    @pytest.mark.parametrize(
        "previous,next_number,range_end,field",
        [
            ("bad", "001-001-01-00000002", "001-001-01-00000099", "previous"),
            ("001-001-01-00000001", "bad", "001-001-01-00000099", "next"),
            ("001-001-01-00000001", "001-001-01-00000002", "bad", "range_end"),
        ],
    )
    def test_format_errors_name_the_field(self, previous, next_number, range_end, field):
        result = validate_next_invoice_number(previous, next_number, range_end, True)

        assert isinstance(result, FormatError)
        assert result.field == field

    def test_beyond_range_end(self):
        result = validate_next_invoice_number(
            "001-001-01-00000099", "001-001-01-00000100", "001-001-01-00000099", True
        )

        assert isinstance(result, OutOfRangeError)

    def test_errors_are_falsy(self):
        assert not validate_next_invoice_number("bad", "bad", "bad", True)


class TestValidateAgainstActiveAuthorization:
    def test_valid_next_number(self):
        assert validate_against_active_authorization(
            "001-001-01-00000005", "001-001-01-00000006", _authorization(), True, today=TODAY
        ) is True

    def test_missing_authorization(self):
        result = validate_against_active_authorization(
            "001-001-01-00000005", "001-001-01-00000006", None, True, today=TODAY
        )

        assert isinstance(result, NoAuthorizationError)

    def test_expired_authorization(self):
        result = validate_against_active_authorization(
            "001-001-01-00000005",
            "001-001-01-00000006",
            _authorization(expiration=TODAY - timedelta(days=1)),
            True,
            today=TODAY,
        )

        assert isinstance(result, ExpiredAuthorizationError)
        assert result.expiration_date == TODAY - timedelta(days=1)

    def test_expiration_day_is_still_valid(self):
        assert validate_against_active_authorization(
            "001-001-01-00000005", "001-001-01-00000006", _authorization(expiration=TODAY), True, today=TODAY
        ) is True

    def test_out_of_range_names_bounds(self):
        result = validate_against_active_authorization(
            "001-001-01-00000005", "001-001-01-00000100", _authorization(), True, today=TODAY
        )

        assert isinstance(result, OutOfRangeError)
        assert "001-001-01-00000001" in result.message
        assert "001-001-01-00000099" in result.message

    def test_below_range_start_without_previous_invoice(self):
        result = validate_against_active_authorization(
            "001-001-01-00000001", "001-001-01-00000000", _authorization(), False, today=TODAY
        )

        assert isinstance(result, OutOfRangeError)

    def test_first_invoice_may_equal_range_start(self):
        assert validate_against_active_authorization(
            "001-001-01-00000001", "001-001-01-00000001", _authorization(), False, today=TODAY
        ) is True

    def test_delegates_sequence_check(self):
        result = validate_against_active_authorization(
            "001-001-01-00000005", "001-001-01-00000005", _authorization(), True, today=TODAY
        )

        assert isinstance(result, SequenceError)


class TestAuthorizationHelpers:
    def test_range_must_be_ordered(self):
        assert validate_authorization_range("001-001-01-00000001", "001-001-01-00000099") is True
        assert isinstance(
            validate_authorization_range("001-001-01-00000099", "001-001-01-00000001"),
            OutOfRangeError,
        )

    def test_range_bounds_format(self):
        result = validate_authorization_range("001-001-01-1", "001-001-01-00000099")

        assert isinstance(result, FormatError)
        assert result.field == "range_invoice1"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("35A1B2-C3D4E5F6A7B8-C9D0E1-F2A3B4-C5", True),
            ("35a1b2-c3d4e5f6a7b8-c9d0e1-f2a3b4-c5", True),
            ("35A1B2-C3D4E5F6A7B8-C9D0E1-F2A3B4", False),
            ("ZZA1B2-C3D4E5F6A7B8-C9D0E1-F2A3B4-C5", False),
            ("", False),
        ],
    )
    def test_cai_format(self, value, expected):
        assert is_valid_cai(value) is expected

    def test_no_notice_far_from_expiration(self):
        assert cai_expiration_notice(TODAY + timedelta(days=31), today=TODAY) is None

    @pytest.mark.parametrize(
        "days,severity",
        [(30, "info"), (15, "warning"), (7, "critical"), (1, "expired"), (-3, "expired")],
    )
    def test_notice_severity(self, days, severity):
        notice = cai_expiration_notice(TODAY + timedelta(days=days), today=TODAY)

        assert notice.severity == severity
        assert notice.days_left == days

    def test_notice_message_mentions_days(self):
        notice = cai_expiration_notice(TODAY + timedelta(days=12), today=TODAY)

        assert notice.title == "CAI Vence pronto"
        assert "12 días" in notice.message


# ============================================================================
# TOTALS
# ============================================================================


class TestComputeTotals:
    def test_fifteen_percent_of_subtotal(self):
        items = [_item(quantity=2, unit_cost=50), _item(quantity=1, unit_cost=100)]

        totals = compute_totals(items, False)

        assert totals.subtotal == pytest.approx(200)
        assert totals.tax == pytest.approx(30)
        assert totals.total == pytest.approx(230)
        assert totals.tax_gravado_15 == pytest.approx(200)
        assert totals.tax_exento == 0

    def test_discount_is_subtracted_per_line(self):
        totals = compute_totals([_item(quantity=3, unit_cost=10, discount=5)], False)

        assert totals.subtotal == pytest.approx(25)
        assert totals.total == pytest.approx(28.75)

    def test_discount_above_gross_is_not_clamped(self):
        totals = compute_totals([_item(quantity=1, unit_cost=10, discount=15)], False)

        assert totals.subtotal == pytest.approx(-5)

    def test_empty_invoice(self):
        totals = compute_totals([], False)

        assert (totals.subtotal, totals.tax, totals.total) == (0, 0, 0)

    @given(
        st.lists(
            st.builds(
                _item,
                quantity=st.integers(0, 1000),
                unit_cost=st.floats(0, 10_000, allow_nan=False),
                discount=st.floats(0, 100, allow_nan=False),
            ),
            max_size=10,
        )
    )
    def test_exempt_invoices_have_no_tax(self, items):
        totals = compute_totals(items, True)

        assert totals.tax == 0
        assert totals.tax_gravado_15 == 0
        assert totals.tax_exento == totals.subtotal
        assert totals.total == totals.subtotal

    def test_eighteen_percent_buckets_stay_empty(self):
        totals = compute_totals([_item(quantity=1, unit_cost=100)], False)

        assert totals.tax_18 == 0
        assert totals.tax_gravado_18 == 0
        assert totals.tax_exonerado == 0


class TestShouldDisableInvoiceGeneration:
    def test_no_items(self):
        assert should_disable_invoice_generation(False, [], {"name": "X", "rtn": "1"}) is True

    def test_proforma_does_not_need_rtn(self):
        assert should_disable_invoice_generation(True, [_item()], {"name": "X", "rtn": ""}) is False

    def test_fiscal_invoice_needs_rtn(self):
        assert should_disable_invoice_generation(False, [_item()], {"name": "X", "rtn": ""}) is True

    def test_customer_name_required(self):
        assert should_disable_invoice_generation(True, [_item()], {"name": "", "rtn": "1"}) is True

    def test_empty_description(self):
        items = [_item(), _item(description="")]

        assert should_disable_invoice_generation(True, items, {"name": "X", "rtn": "1"}) is True

    def test_complete_draft(self):
        assert should_disable_invoice_generation(False, [_item()], {"name": "X", "rtn": "1"}) is False

    def test_accepts_objects(self):
        class Customer:
            name = "X"
            rtn = None

        assert should_disable_invoice_generation(False, [_item()], Customer()) is True
