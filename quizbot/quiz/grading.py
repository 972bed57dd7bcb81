"""Percentage to letter-grade mapping."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from quizbot.errors import ConfigurationError

DEFAULT_BANDS = "0:F,55:C,60:C+,70:B,75:B+,85:A,90:A+"


@dataclass(frozen=True)
class GradeBand:
    minimum: Decimal
    label: str


class GradeBander:
    """Ascending threshold table: a percentage gets the label of the highest band it reaches."""

    def __init__(self, bands: list[GradeBand]) -> None:
        if not bands:
            raise ConfigurationError("grade table must define at least one band")
        ordered = sorted(bands, key=lambda band: band.minimum)
        for prev, current in zip(ordered, ordered[1:]):
            if prev.minimum == current.minimum:
                raise ConfigurationError(f"duplicate grade threshold {current.minimum}")
        self.bands: tuple[GradeBand, ...] = tuple(ordered)

    @classmethod
    def from_string(cls, raw: str) -> "GradeBander":
        bands: list[GradeBand] = []
        for chunk in (raw or "").split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            threshold, sep, label = chunk.partition(":")
            if not sep or not label.strip():
                raise ConfigurationError(f"grade band must look like '<min>:<label>': {chunk!r}")
            try:
                minimum = Decimal(threshold.strip())
            except InvalidOperation as exc:
                raise ConfigurationError(f"grade threshold is not a number: {threshold!r}") from exc
            bands.append(GradeBand(minimum=minimum, label=label.strip()))
        return cls(bands)

    def grade(self, percentage: Decimal | float) -> str:
        value = Decimal(str(percentage))
        label = self.bands[0].label
        for band in self.bands:
            if value >= band.minimum:
                label = band.label
            else:
                break
        return label

    def rank(self, label: str) -> int:
        for idx, band in enumerate(self.bands):
            if band.label == label:
                return idx
        raise KeyError(label)


__all__ = ["DEFAULT_BANDS", "GradeBand", "GradeBander"]
