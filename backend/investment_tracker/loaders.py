"""Ingestion boundary: storage records to validated domain models.

Records arrive as plain mappings (rows from the ledger, instrument and
price stores, or the persisted indicator list). Malformed records fail
fast with :class:`RecordValidationError`; everything past this module
works on trusted dataclasses.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Type, TypeVar

import pandas as pd
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from .errors import RecordValidationError
from .models import (
    AssetClass,
    AssetType,
    Direction,
    Instrument,
    MacroIndicatorConfig,
    PriceQuote,
    RegionKey,
    Transaction,
    TransactionType,
)

RecordT = TypeVar("RecordT", bound=BaseModel)


def _coerce_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


class TransactionRecord(BaseModel):
    instrument_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("instrument_ref", "instrumentRef", "instrumentTicker", "ticker"),
    )
    date: date
    type: TransactionType
    quantity: float
    price: float = 0.0
    currency: str = Field(default="CHF", min_length=3, max_length=3)
    fees: float = Field(default=0.0, validation_alias=AliasChoices("fees", "fee"))

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Any:
        return _coerce_date(value)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("currency")
    @classmethod
    def _currency(cls, value: str) -> str:
        return value.upper()

    def to_model(self) -> Transaction:
        return Transaction(
            date=self.date,
            type=self.type,
            quantity=self.quantity,
            price=self.price,
            currency=self.currency,
            instrument_ref=self.instrument_ref,
            fees=self.fees,
        )


class InstrumentRecord(BaseModel):
    id: str | None = None
    ticker: str = Field(..., min_length=1)
    name: str = ""
    asset_type: AssetType = Field(validation_alias=AliasChoices("asset_type", "assetType", "type"))
    currency: str = Field(..., min_length=3, max_length=3)
    target_pct: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        validation_alias=AliasChoices("target_pct", "targetPct", "targetAllocation"),
    )
    asset_class: AssetClass | None = Field(
        default=None, validation_alias=AliasChoices("asset_class", "assetClass")
    )
    isin: str | None = None
    region_allocation: Dict[RegionKey, float] | None = Field(
        default=None, validation_alias=AliasChoices("region_allocation", "regionAllocation")
    )

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("asset_type", mode="before")
    @classmethod
    def _asset_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            for member in AssetType:
                if member.value.lower() == value.lower():
                    return member
        return value

    @field_validator("currency")
    @classmethod
    def _currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("isin", mode="before")
    @classmethod
    def _isin(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() or None
        return value

    @field_validator("region_allocation", mode="before")
    @classmethod
    def _drop_blank_regions(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: v for k, v in value.items() if v is not None}
        return value

    @field_validator("region_allocation")
    @classmethod
    def _region_allocation(cls, value: Dict[RegionKey, float] | None) -> Dict[RegionKey, float] | None:
        if value is None:
            return None
        if any(pct < 0 for pct in value.values()):
            raise ValueError("region percentages must not be negative")
        if sum(value.values()) > 100 + 1e-6:
            raise ValueError("region percentages must not exceed 100 in total")
        return value or None

    def to_model(self) -> Instrument:
        return Instrument(
            ticker=self.ticker,
            name=self.name,
            asset_type=self.asset_type,
            currency=self.currency,
            target_pct=self.target_pct,
            id=self.id,
            asset_class=self.asset_class,
            isin=self.isin,
            region_allocation=self.region_allocation,
        )


class PriceQuoteRecord(BaseModel):
    ticker: str = Field(..., min_length=1)
    date: date
    close: float = Field(..., ge=0.0)

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Any:
        return _coerce_date(value)

    def to_model(self) -> PriceQuote:
        return PriceQuote(ticker=self.ticker, date=self.date, close=self.close)


class MacroIndicatorRecord(BaseModel):
    id: str
    name: str
    unit: str | None = None
    current_value: float = Field(validation_alias=AliasChoices("current_value", "currentValue"))
    min_value: float = Field(validation_alias=AliasChoices("min_value", "minValue"))
    max_value: float = Field(validation_alias=AliasChoices("max_value", "maxValue"))
    weight: float = Field(..., ge=0.0, le=100.0)
    direction: Direction

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Any:
        return str(value)

    def to_model(self) -> MacroIndicatorConfig:
        return MacroIndicatorConfig(
            id=self.id,
            name=self.name,
            current_value=self.current_value,
            min_value=self.min_value,
            max_value=self.max_value,
            weight=self.weight,
            direction=self.direction,
            unit=self.unit,
        )


def _parse(kind: str, schema: Type[RecordT], records: Iterable[Mapping[str, Any]]) -> List[RecordT]:
    parsed: List[RecordT] = []
    for index, record in enumerate(records):
        try:
            parsed.append(schema.model_validate(dict(record)))
        except ValidationError as exc:
            raise RecordValidationError(kind, index, exc.errors()) from exc
    return parsed


def load_transactions(records: Iterable[Mapping[str, Any]]) -> List[Transaction]:
    return [r.to_model() for r in _parse("transaction", TransactionRecord, records)]


def load_instruments(records: Iterable[Mapping[str, Any]]) -> List[Instrument]:
    return [r.to_model() for r in _parse("instrument", InstrumentRecord, records)]


def load_quotes(records: Iterable[Mapping[str, Any]]) -> List[PriceQuote]:
    return [r.to_model() for r in _parse("price quote", PriceQuoteRecord, records)]


def quotes_from_frame(df: pd.DataFrame) -> List[PriceQuote]:
    """Build quotes from a DataFrame with ``ticker``, ``date`` and ``close`` columns.

    Rows with a missing close are dropped, matching a gap in the series.
    """

    frame = df.copy()
    frame.columns = [str(c).lower() for c in frame.columns]
    required = {"ticker", "date", "close"}
    if not required.issubset(frame.columns):
        raise ValueError(f"Price frame must contain columns: {sorted(required)}")
    frame = frame.dropna(subset=["close"])
    frame["date"] = pd.to_datetime(frame["date"]).dt.date
    return load_quotes(frame[["ticker", "date", "close"]].to_dict(orient="records"))


def load_indicators(payload: str | Sequence[Mapping[str, Any]]) -> List[MacroIndicatorConfig]:
    """Parse the persisted indicator list (a JSON string or decoded records)."""

    records = json.loads(payload) if isinstance(payload, str) else payload
    if not isinstance(records, list):
        raise ValueError("Indicator payload must be a list of records")
    return [r.to_model() for r in _parse("indicator", MacroIndicatorRecord, records)]


def dump_indicators(indicators: Sequence[MacroIndicatorConfig]) -> str:
    """Serialize indicator configs to the persisted JSON list format."""

    return json.dumps(
        [
            {
                "id": ind.id,
                "name": ind.name,
                "unit": ind.unit,
                "currentValue": ind.current_value,
                "minValue": ind.min_value,
                "maxValue": ind.max_value,
                "weight": ind.weight,
                "direction": ind.direction.value,
            }
            for ind in indicators
        ],
        indent=2,
    )


__all__ = [
    "TransactionRecord",
    "InstrumentRecord",
    "PriceQuoteRecord",
    "MacroIndicatorRecord",
    "load_transactions",
    "load_instruments",
    "load_quotes",
    "quotes_from_frame",
    "load_indicators",
    "dump_indicators",
]
