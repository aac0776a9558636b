"""Tests for gateway request signatures."""

import hashlib
from datetime import datetime

import pytest
from payments.gateway.signature import (
    canonical_amount,
    mint_edi_date,
    sign_approval,
    sign_auth_request,
    sign_cancel,
)

EDI_DATE = "20261019153000"


def _sha256(text):
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TestApprovalSignature:
    def test_digest_over_fields_in_order(self):
        signature = sign_approval("tok-1", "MID001", 15000, EDI_DATE, "secret")
        assert signature == _sha256("tok-1MID00115000" + EDI_DATE + "secret")

    def test_is_lowercase_hex_of_sha256_length(self):
        signature = sign_approval("tok-1", "MID001", 15000, EDI_DATE, "secret")
        assert len(signature) == 64
        assert signature == signature.lower()
        int(signature, 16)

    def test_deterministic(self):
        assert sign_approval("tok", "MID", "1000", EDI_DATE, "k") == sign_approval("tok", "MID", 1000, EDI_DATE, "k")

    @pytest.mark.parametrize(
        "changed",
        [
            ("tok-2", "MID001", 15000, EDI_DATE, "secret"),
            ("tok-1", "MID002", 15000, EDI_DATE, "secret"),
            ("tok-1", "MID001", 15001, EDI_DATE, "secret"),
            ("tok-1", "MID001", 15000, "20261019153001", "secret"),
            ("tok-1", "MID001", 15000, EDI_DATE, "secreT"),
        ],
    )
    def test_any_field_changes_the_signature(self, changed):
        assert sign_approval(*changed) != sign_approval("tok-1", "MID001", 15000, EDI_DATE, "secret")

    def test_non_ascii_token_is_utf8_encoded(self):
        signature = sign_approval("토큰", "MID", 1, EDI_DATE, "k")
        assert signature == _sha256("토큰MID1" + EDI_DATE + "k")

    @pytest.mark.parametrize("edi_date", ["", "2026101915300", "202610191530000", "2026-10-19 15:30", "2026101915300a"])
    def test_rejects_malformed_edi_date(self, edi_date):
        with pytest.raises(ValueError):
            sign_approval("tok", "MID", 1000, edi_date, "k")


class TestFieldBoundaries:
    """Amount and EdiDate are concatenated without a separator; only the fixed date width keeps them apart."""

    def test_amount_cannot_borrow_a_digit_from_the_date(self):
        shifted_date = EDI_DATE[1:]
        assert "100" + EDI_DATE == "1002" + shifted_date

        sign_approval("tok", "MID", "100", EDI_DATE, "k")
        with pytest.raises(ValueError):
            sign_approval("tok", "MID", "1002", shifted_date, "k")

    def test_amounts_differing_by_a_trailing_digit_sign_differently(self):
        assert sign_approval("tok", "MID", "100", EDI_DATE, "k") != sign_approval("tok", "MID", "1000", EDI_DATE, "k")

    def test_cancel_refuses_a_short_date(self):
        with pytest.raises(ValueError):
            sign_cancel("MID", "1002", EDI_DATE[1:], "k")


class TestOtherSignatures:
    def test_auth_request_order(self):
        assert sign_auth_request(EDI_DATE, "MID001", 5000, "secret") == _sha256(EDI_DATE + "MID0015000secret")

    def test_cancel_order(self):
        assert sign_cancel("MID001", 5000, EDI_DATE, "secret") == _sha256("MID0015000" + EDI_DATE + "secret")


class TestCanonicalAmount:
    @pytest.mark.parametrize("amount,expected", [(0, "0"), (15000, "15000"), ("15000", "15000"), (" 42 ", "42")])
    def test_accepts(self, amount, expected):
        assert canonical_amount(amount) == expected

    @pytest.mark.parametrize("amount", [-1, "-1", "015000", "150.00", 150.0, "15,000", "", "   ", True, None])
    def test_rejects(self, amount):
        with pytest.raises(ValueError):
            canonical_amount(amount)


class TestEdiDate:
    def test_fourteen_digits(self):
        assert mint_edi_date(datetime(2026, 1, 2, 3, 4, 5)) == "20260102030405"

    def test_defaults_to_now(self):
        edi_date = mint_edi_date()
        assert len(edi_date) == 14
        assert edi_date.isdigit()
