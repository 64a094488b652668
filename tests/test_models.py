"""
Tests for the Card and Token models.

Tests cover:
- Card validation and canonical encoding
- Card decoding failures
- PAN masking in reprs
- Token defaults, immutability and public/persisted shapes
"""
import base64
from datetime import datetime, timezone

import orjson
import pytest
from pydantic import ValidationError

from tokenvault.exceptions import DeserializationError
from tokenvault.models import Card, Token


class TestCard:
    """Card validation and encoding."""

    def test_canonical_encoding_field_order(self, card):
        """Keys are encoded in a fixed order."""
        assert card.to_bytes() == (
            b'{"Number":"4024007129267307","CardHolderName":"JOHN DOE",'
            b'"ExpirationMonth":"10","ExpirationYear":"30"}'
        )

    def test_encoding_is_utf8(self, accented_card):
        encoded = accented_card.to_bytes()
        assert "JOÃO DOS SANTOS ANDRÉ".encode("utf-8") in encoded

    def test_decode_encoded_card(self, accented_card):
        assert Card.from_bytes(accented_card.to_bytes()) == accented_card

    def test_decode_by_alias(self):
        """Payloads keyed by the encoding aliases are readable."""
        payload = orjson.dumps({
            "Number": "4111111111111111",
            "CardHolderName": "JANE ROE",
            "ExpirationMonth": "01",
            "ExpirationYear": "29",
        })
        card = Card.from_bytes(payload)
        assert card.number == "4111111111111111"
        assert card.expiration_month == "01"

    def test_rejects_non_digit_number(self):
        with pytest.raises(ValidationError):
            Card(
                number="4024-0071-2926-7307",
                card_holder_name="JOHN DOE",
                expiration_month="10",
                expiration_year="30",
            )

    def test_validation_error_does_not_echo_pan(self):
        with pytest.raises(ValidationError) as exc_info:
            Card(
                number="4024-0071-2926-7307",
                card_holder_name="JOHN DOE",
                expiration_month="10",
                expiration_year="30",
            )
        assert "4024-0071-2926-7307" not in str(exc_info.value)
        assert "number" in str(exc_info.value).lower()

    def test_rejects_bad_month(self):
        with pytest.raises(ValidationError):
            Card(
                number="4024007129267307",
                card_holder_name="JOHN DOE",
                expiration_month="13",
                expiration_year="30",
            )

    def test_rejects_four_digit_year(self):
        with pytest.raises(ValidationError):
            Card(
                number="4024007129267307",
                card_holder_name="JOHN DOE",
                expiration_month="10",
                expiration_year="2030",
            )

    def test_repr_hides_sensitive_fields(self, card):
        assert "4024007129267307" not in repr(card)
        assert "JOHN DOE" not in repr(card)
        assert "4024007129267307" not in str(card)

    def test_masked_number(self, card):
        assert card.last4 == "7307"
        assert card.masked_number == "************7307"


class TestCardDecodingErrors:
    """Malformed decrypted payloads."""

    def test_not_json(self):
        with pytest.raises(DeserializationError):
            Card.from_bytes(b"\x00\x01not json")

    def test_not_an_object(self):
        with pytest.raises(DeserializationError):
            Card.from_bytes(b'["4024007129267307"]')

    def test_missing_fields(self):
        with pytest.raises(DeserializationError):
            Card.from_bytes(b'{"Number":"4024007129267307"}')

    def test_error_does_not_echo_pan(self):
        payload = b'{"Number":"40240071292673X7","CardHolderName":"A",' \
                  b'"ExpirationMonth":"10","ExpirationYear":"30"}'
        with pytest.raises(DeserializationError) as exc_info:
            Card.from_bytes(payload)
        assert "40240071292673X7" not in str(exc_info.value)


class TestToken:
    """Token defaults and shapes."""

    @pytest.fixture
    def token(self):
        return Token(
            merchant_id="m1",
            provider="p1",
            data_card=b"\x00\xffciphertext",
        )

    def test_id_is_generated(self, token):
        assert token.id
        assert len(token.id) == 36

    def test_ids_differ(self):
        first = Token(merchant_id="m", provider="p", data_card=b"x")
        second = Token(merchant_id="m", provider="p", data_card=b"x")
        assert first.id != second.id

    def test_date_is_utc(self, token):
        assert token.date.tzinfo is not None
        assert token.date.utcoffset().total_seconds() == 0

    def test_naive_date_is_treated_as_utc(self):
        token = Token(
            merchant_id="m", provider="p", data_card=b"x",
            date=datetime(2030, 10, 1, 12, 0, 0),
        )
        assert token.date == datetime(2030, 10, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_id_is_immutable(self, token):
        with pytest.raises(ValidationError):
            token.id = "other"

    def test_optional_fields_default_empty(self, token):
        assert token.card_id == ""
        assert token.token_provider == ""

    def test_public_shape(self, token):
        public = token.to_public()
        assert set(public) == {
            "id", "merchant_id", "provider", "card_id",
            "token_provider", "data_card",
        }
        assert "date" not in public
        assert base64.b64decode(public["data_card"]) == b"\x00\xffciphertext"

    def test_public_shape_is_json_serializable(self, token):
        assert orjson.loads(orjson.dumps(token.to_public()))["id"] == token.id

    def test_from_public(self, token):
        parsed = Token.from_public(token.to_public())
        assert parsed.id == token.id
        assert parsed.data_card == token.data_card

    def test_from_public_rejects_bad_base64(self, token):
        public = token.to_public()
        public["data_card"] = "not base64!"
        with pytest.raises(ValueError):
            Token.from_public(public)

    def test_record_keeps_date(self, token):
        record = token.to_record()
        assert record["date"] == token.date
        assert record["data_card"] == token.data_card

    def test_from_record_ignores_unset_properties(self, token):
        record = token.to_record()
        record["card_id"] = None
        assert Token.from_record(record).card_id == ""
