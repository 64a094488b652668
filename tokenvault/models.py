"""
Vault data model — Card (ephemeral plaintext) and Token (durable record).

Security Note:
    A Card must never be persisted or logged in plaintext. Its repr hides the
    PAN and the card holder name; use ``masked_number`` for display.
"""
import uuid
import base64
import binascii
from typing import Any
from datetime import datetime, timezone

import orjson
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import DeserializationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_token_id() -> str:
    """Return a fresh 128-bit random identifier (UUID4, canonical form)."""
    return str(uuid.uuid4())


class Card(BaseModel):
    """Payment card data, held in memory only.

    Aliases are the field names of the canonical encoding; they are kept
    stable so previously stored ciphertexts stay readable.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, hide_input_in_errors=True
    )

    number: str = Field(alias="Number", pattern=r"^\d{12,19}$", repr=False)
    card_holder_name: str = Field(alias="CardHolderName", repr=False)
    expiration_month: str = Field(alias="ExpirationMonth", pattern=r"^\d{2}$")
    expiration_year: str = Field(alias="ExpirationYear", pattern=r"^\d{2}$")

    @field_validator("expiration_month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        if not 1 <= int(v) <= 12:
            raise ValueError(f"Invalid expiration month: {v}")
        return v

    @property
    def last4(self) -> str:
        return self.number[-4:]

    @property
    def masked_number(self) -> str:
        return "*" * (len(self.number) - 4) + self.last4

    def to_bytes(self) -> bytes:
        """Canonical encoding: UTF-8 JSON with a fixed key order."""
        return orjson.dumps(self.model_dump(by_alias=True))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Card":
        """Parse the canonical encoding back into a Card.

        Raises:
            DeserializationError: If ``data`` is not a valid encoded card.
        """
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise DeserializationError(
                f"Decrypted payload is not valid JSON: {err}"
            ) from err
        if not isinstance(parsed, dict):
            raise DeserializationError(
                f"Decrypted payload is a {type(parsed).__name__}, expected an object"
            )
        try:
            return cls.model_validate(parsed)
        except ValidationError as err:
            # error messages may echo input values, only report locations
            fields = sorted({str(e["loc"][0]) for e in err.errors() if e["loc"]})
            raise DeserializationError(
                f"Decrypted payload is not a valid card (fields: {fields})"
            ) from None


class Token(BaseModel):
    """Durable record standing in for a tokenized card.

    ``data_card`` holds the ciphertext returned by the KMS and is opaque to
    everything but the envelope crypto client. ``date`` is internal and is
    never part of the public shape.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_token_id, min_length=1)
    merchant_id: str
    provider: str
    card_id: str = ""
    token_provider: str = ""
    data_card: bytes = Field(repr=False)
    date: datetime = Field(default_factory=utcnow, exclude=True)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: datetime) -> datetime:
        """Normalize to an aware UTC timestamp (naive values are UTC)."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_public(self) -> dict[str, Any]:
        """External shape, with ``data_card`` base64-encoded."""
        return {
            "id": self.id,
            "merchant_id": self.merchant_id,
            "provider": self.provider,
            "card_id": self.card_id,
            "token_provider": self.token_provider,
            "data_card": base64.b64encode(self.data_card).decode("ascii"),
        }

    @classmethod
    def from_public(cls, data: dict[str, Any]) -> "Token":
        """Build a Token from its external shape.

        Raises:
            ValueError: If ``data_card`` is not valid base64 or a field is invalid.
        """
        values = dict(data)
        try:
            values["data_card"] = base64.b64decode(
                values.get("data_card", ""), validate=True
            )
        except (binascii.Error, TypeError) as err:
            raise ValueError(f"data_card is not valid base64: {err}") from err
        return cls.model_validate(values)

    def to_record(self) -> dict[str, Any]:
        """Persisted shape, including the creation date."""
        record = self.model_dump()
        record["date"] = self.date
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Token":
        # backends may return unset properties as None
        return cls.model_validate(
            {k: v for k, v in record.items() if v is not None}
        )
