from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

import payments
from payments import (
    CardPayment, display_details, format_inr, luhn_valid, mask_upi_id, parse_payment,
    payment_charge, sanitize_payment, validate_payment,
)


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr(payments, "_today", lambda: date(2026, 10, 19))


def card(**overrides):
    data = {
        "method": "card",
        "holder_name": "Asha Rao",
        "number": "4111111111111111",
        "expiry_month": "12",
        "expiry_year": "28",
        "cvv": "123",
    }
    data.update(overrides)
    return data


class TestLuhn:
    def test_known_good_numbers(self):
        assert luhn_valid("4111111111111111")
        assert luhn_valid("4242424242424242")
        assert luhn_valid("5555555555554444")

    def test_single_digit_change_fails(self):
        assert not luhn_valid("4111111111111112")

    def test_rejects_non_digits(self):
        assert not luhn_valid("")
        assert not luhn_valid("4111-1111-1111-1111")


class TestCard:
    def test_valid_card(self):
        assert validate_payment(card()) == []

    def test_spaces_in_number_are_stripped(self):
        payment = parse_payment(card(number="4111 1111 1111 1111"))
        assert payment.number == "4111111111111111"

    def test_luhn_failure(self):
        assert validate_payment(card(number="4111111111111112")) == ["Invalid card number"]

    def test_wrong_length(self):
        assert validate_payment(card(number="411111111111111")) == ["Card number must be 16 digits"]

    def test_holder_name_letters_only(self):
        assert validate_payment(card(holder_name="J0hn")) == ["Name should only contain letters and spaces"]

    def test_holder_name_too_short(self):
        assert validate_payment(card(holder_name="A")) == ["Cardholder name must be at least 2 characters"]

    def test_month_format(self):
        assert validate_payment(card(expiry_month="13")) == ["Invalid month format (MM)"]
        assert validate_payment(card(expiry_month="1")) == ["Invalid month format (MM)"]

    def test_year_window(self):
        assert validate_payment(card(expiry_year="25")) == ["Card has expired or invalid year"]
        assert validate_payment(card(expiry_year="37")) == ["Card has expired or invalid year"]
        assert validate_payment(card(expiry_year="36")) == []

    def test_expired_earlier_this_year(self):
        assert validate_payment(card(expiry_year="26", expiry_month="09")) == ["Card has expired"]
        assert validate_payment(card(expiry_year="26", expiry_month="10")) == []

    def test_cvv(self):
        assert validate_payment(card(cvv="12")) == ["CVV must be 3 or 4 digits"]
        assert validate_payment(card(cvv="1234")) == []

    def test_several_errors_reported(self):
        errors = validate_payment(card(number="1", cvv="x"))
        assert "Card number must be 16 digits" in errors
        assert "CVV must be 3 or 4 digits" in errors


class TestOtherMethods:
    def test_upi(self):
        assert validate_payment({"method": "upi", "upi_id": "asha@paytm"}) == []
        assert validate_payment({"method": "upi", "upi_id": "asha.rao-1@okhdfc"}) == []
        assert validate_payment({"method": "upi", "upi_id": "a@paytm"}) != []
        assert validate_payment({"method": "upi", "upi_id": "asha@123"}) != []
        assert validate_payment({"method": "upi", "upi_id": ""}) == ["UPI ID is required"]

    def test_netbanking(self):
        payment = parse_payment({"method": "netbanking", "bank_name": "hdfc"})
        assert payment.account_type == "savings"
        assert validate_payment({"method": "netbanking", "bank_name": "xyz"}) == ["Unsupported bank"]
        assert validate_payment({"method": "netbanking", "bank_name": ""}) == ["Please select a bank"]
        assert validate_payment(
            {"method": "netbanking", "bank_name": "sbi", "account_type": "fixed"}
        ) != []

    def test_cod_needs_confirmation(self):
        assert validate_payment({"method": "cod", "confirmed": True}) == []
        assert validate_payment({"method": "cod", "confirmed": False}) == ["Please confirm COD payment"]
        assert validate_payment({"method": "cod"}) == ["Please confirm COD payment"]

    def test_qrcode(self):
        assert validate_payment({"method": "qrcode", "confirmed": True, "amount": "1538.40"}) == []
        assert validate_payment({"method": "qrcode", "confirmed": False, "amount": 10}) == [
            "Please confirm QR Code payment"
        ]
        assert validate_payment({"method": "qrcode", "confirmed": True, "amount": 0}) != []

    def test_unknown_method(self):
        assert validate_payment({"method": "bitcoin"}) != []
        with pytest.raises(ValidationError):
            parse_payment({"upi_id": "asha@paytm"})


class TestHelpers:
    def test_payment_charge(self):
        assert payment_charge("cod") == Decimal("50.00")
        assert payment_charge("card") == Decimal("0.00")
        assert payment_charge(None) == Decimal("0.00")

    def test_sanitized_card_drops_number_and_cvv(self):
        summary = sanitize_payment(CardPayment(**card()))
        assert summary == {
            "holder_name": "Asha Rao",
            "last4": "1111",
            "expiry_month": "12",
            "expiry_year": "28",
        }

    def test_display_details(self):
        assert display_details(None, None) == "No payment method selected"
        assert display_details("card", {"last4": "4242"}) == "Card ending in 4242"
        assert display_details("card", None) == "Credit/Debit Card"
        assert display_details("upi", {"upi_id": "asha@okhdfc"}) == "as***@okhdfc"
        assert display_details("netbanking", {"bank_name": "hdfc", "account_type": "current"}) == (
            "HDFC Bank - current"
        )
        assert display_details("cod", {"confirmed": True}) == "Cash on Delivery"
        assert display_details("qrcode", {"confirmed": True, "amount": "1234.00"}) == (
            "QR Code Payment - ₹1,234"
        )

    def test_mask_upi_id(self):
        assert mask_upi_id("priya.sharma@ybl") == "pr***@ybl"

    def test_format_inr_uses_indian_grouping(self):
        assert format_inr(Decimal("123456.5")) == "₹1,23,456.50"
        assert format_inr(899) == "₹899"
        assert format_inr("1234567") == "₹12,34,567"


class TestStrictFormats:
    def test_trailing_newline_rejected(self):
        assert validate_payment(card(cvv="123\n")) == ["CVV must be 3 or 4 digits"]
        assert validate_payment(card(expiry_month="12\n")) == ["Invalid month format (MM)"]
        assert validate_payment(card(expiry_year="28\n")) == ["Invalid year format (YY)"]

    def test_non_ascii_digits_rejected(self):
        full_width = "４１１１１１１１１１１１１１１１"
        assert validate_payment(card(number=full_width)) == ["Card number must be 16 digits"]
        assert validate_payment(card(cvv="１２３")) == ["CVV must be 3 or 4 digits"]

    def test_luhn_ignores_superscripts(self):
        assert not luhn_valid("²")
        assert not luhn_valid("411111111111111²")
