"""
Price grid normalization and lookup.

Stored grids arrive in one of three shapes:

    1. Width list      [{"width": 100, "price": 45}, ...]
    2. Band matrix     {"widthColumns": [...], "dropRows": [{"drop": 150, "prices": [...]}]}
    3. Range labels    {"widthRanges": ["0-100", ...], "dropRanges": [...], "prices": [[...]]}

Each shape is parsed into its own variant, then normalized into a single
CanonicalGrid with ordered (lower, upper] bands on both axes. Lookup picks the
smallest band whose upper bound is >= the measurement.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import ConfigError, GridLookupError

logger = logging.getLogger(__name__)

INF = math.inf

# Tolerance for measurements sitting exactly on a band edge
_EPSILON = 1e-9

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


@dataclass(frozen=True)
class Band:
    lower: float
    upper: float
    label: str


@dataclass(frozen=True)
class CanonicalGrid:
    width_bands: Tuple[Band, ...]
    drop_bands: Tuple[Band, ...]
    prices: Tuple[Tuple[Optional[float], ...], ...]  # [drop_index][width_index]
    source_format: str

    @property
    def width_only(self) -> bool:
        return len(self.drop_bands) == 1 and self.drop_bands[0].upper == INF


# --- Raw shapes ---

@dataclass(frozen=True)
class WidthPriceList:
    entries: list


@dataclass(frozen=True)
class BandMatrixGrid:
    width_columns: list
    drop_rows: list


@dataclass(frozen=True)
class RangeLabelGrid:
    width_ranges: list
    drop_ranges: list
    prices: list


def parse_raw_grid(raw):
    """Identify which stored shape a grid uses."""
    if isinstance(raw, list):
        return WidthPriceList(entries=raw)
    if isinstance(raw, dict):
        if "widthColumns" in raw and "dropRows" in raw:
            return BandMatrixGrid(
                width_columns=list(raw["widthColumns"] or []),
                drop_rows=list(raw["dropRows"] or []),
            )
        if "widthRanges" in raw and "dropRanges" in raw and "prices" in raw:
            return RangeLabelGrid(
                width_ranges=list(raw["widthRanges"] or []),
                drop_ranges=list(raw["dropRanges"] or []),
                prices=list(raw["prices"] or []),
            )
    raise ConfigError(
        "Unrecognised price grid shape. Expected a width/price list, "
        "a widthColumns/dropRows matrix or a widthRanges/dropRanges/prices matrix"
    )


# --- Value parsing ---

def _to_number(value, what: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"Non-numeric {what} in price grid: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[^0-9.\-]", "", value)
        try:
            return float(cleaned)
        except ValueError:
            raise ConfigError(f"Non-numeric {what} in price grid: {value!r}")
    raise ConfigError(f"Non-numeric {what} in price grid: {value!r}")


def _to_price(value) -> Optional[float]:
    """Blank cells are kept as None so lookup can report them."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _to_number(value, "price")


def parse_range_label(label) -> Tuple[Optional[float], float]:
    """
    Parse a band label into (lower, upper).

    "0-100" -> (0, 100), "101 - 150" -> (101, 150), "200" -> (None, 200),
    "200+" -> (200, inf). A lower of None means "follows the previous band".
    """
    if isinstance(label, (int, float)) and not isinstance(label, bool):
        return None, float(label)
    text = str(label).strip().lower()
    numbers = [float(n) for n in _NUMBER_RE.findall(text)]
    if not numbers:
        raise ConfigError(f"Unparseable band label in price grid: {label!r}")

    if text.endswith("+") or text.startswith(("over", "above")):
        return numbers[0], INF
    if len(numbers) >= 2:
        lower, upper = numbers[0], numbers[1]
        if upper < lower:
            raise ConfigError(f"Band label {label!r} has its bounds reversed")
        return lower, upper
    return None, numbers[0]


def _bands_from_uppers(uppers: list, labels: list = None) -> Tuple[Band, ...]:
    """Consecutive bands from ascending upper bounds. Duplicates are rejected."""
    bands = []
    lower = 0.0
    for i, upper in enumerate(uppers):
        if bands and upper <= bands[-1].upper:
            raise ConfigError(f"Duplicate band boundary {upper:g} in price grid")
        label = labels[i] if labels else f"{upper:g}"
        bands.append(Band(lower=lower, upper=upper, label=label))
        lower = upper
    return tuple(bands)


# --- Normalizers, one per shape ---

def _normalize_width_list(variant: WidthPriceList) -> CanonicalGrid:
    rows = []
    for entry in variant.entries:
        if not isinstance(entry, dict) or "width" not in entry:
            raise ConfigError(f"Width list entry is missing 'width': {entry!r}")
        rows.append((_to_number(entry["width"], "width"), _to_price(entry.get("price"))))
    if not rows:
        raise ConfigError("Price grid has no entries")

    rows.sort(key=lambda r: r[0])
    return CanonicalGrid(
        width_bands=_bands_from_uppers([width for width, _ in rows]),
        drop_bands=(Band(lower=0.0, upper=INF, label="any drop"),),
        prices=(tuple(price for _, price in rows),),
        source_format="width_list",
    )


def _normalize_band_matrix(variant: BandMatrixGrid) -> CanonicalGrid:
    widths = [_to_number(w, "width") for w in variant.width_columns]
    if not widths or not variant.drop_rows:
        raise ConfigError("Price grid matrix needs at least one width column and one drop row")

    column_order = sorted(range(len(widths)), key=widths.__getitem__)
    rows = []
    for row in variant.drop_rows:
        if not isinstance(row, dict) or "drop" not in row:
            raise ConfigError(f"Drop row is missing 'drop': {row!r}")
        raw_prices = list(row.get("prices") or [])
        prices = tuple(
            _to_price(raw_prices[i]) if i < len(raw_prices) else None
            for i in column_order
        )
        rows.append((_to_number(row["drop"], "drop"), prices))

    rows.sort(key=lambda r: r[0])
    return CanonicalGrid(
        width_bands=_bands_from_uppers(sorted(widths)),
        drop_bands=_bands_from_uppers([drop for drop, _ in rows]),
        prices=tuple(prices for _, prices in rows),
        source_format="band_matrix",
    )


def _labelled_bands(labels: list, axis: str) -> Tuple[Tuple[Band, ...], list]:
    """Bands from range labels, plus the original index of each band."""
    parsed = []
    for i, label in enumerate(labels):
        lower, upper = parse_range_label(label)
        parsed.append((upper, lower, i, str(label)))
    if not parsed:
        raise ConfigError(f"Price grid has no {axis} ranges")
    parsed.sort(key=lambda p: p[0])

    bands = []
    previous_upper = 0.0
    for upper, lower, _, label in parsed:
        if bands and upper <= bands[-1].upper:
            raise ConfigError(f"Overlapping {axis} ranges in price grid at {label!r}")
        bands.append(Band(
            lower=previous_upper if lower is None else lower,
            upper=upper,
            label=label,
        ))
        previous_upper = upper
    return tuple(bands), [p[2] for p in parsed]


def _normalize_range_labels(variant: RangeLabelGrid) -> CanonicalGrid:
    width_bands, width_order = _labelled_bands(variant.width_ranges, "width")
    drop_bands, drop_order = _labelled_bands(variant.drop_ranges, "drop")

    if len(variant.prices) != len(variant.drop_ranges):
        raise ConfigError(
            f"Price grid has {len(variant.prices)} price rows "
            f"for {len(variant.drop_ranges)} drop ranges"
        )

    prices = []
    for d in drop_order:
        row = list(variant.prices[d] or [])
        prices.append(tuple(
            _to_price(row[w]) if w < len(row) else None
            for w in width_order
        ))
    return CanonicalGrid(
        width_bands=width_bands,
        drop_bands=drop_bands,
        prices=tuple(prices),
        source_format="range_labels",
    )


_NORMALIZERS = {
    WidthPriceList: _normalize_width_list,
    BandMatrixGrid: _normalize_band_matrix,
    RangeLabelGrid: _normalize_range_labels,
}


def normalize(raw) -> CanonicalGrid:
    """Parse any accepted grid shape into a CanonicalGrid. Raises ConfigError."""
    if isinstance(raw, CanonicalGrid):
        return raw
    variant = parse_raw_grid(raw)
    grid = _NORMALIZERS[type(variant)](variant)
    logger.debug(
        "Normalized %s grid: %d width bands x %d drop bands",
        grid.source_format, len(grid.width_bands), len(grid.drop_bands),
    )
    return grid


def _match_band(bands: Tuple[Band, ...], value: float, axis: str) -> int:
    for index, band in enumerate(bands):
        if value <= band.upper + _EPSILON:
            return index
    raise GridLookupError(
        f"{axis.capitalize()} {value:g} is larger than the largest {axis} band ({bands[-1].label})"
    )


def lookup(grid, width: float, drop: float) -> float:
    """
    Price for a width x drop. Accepts a raw stored grid or a CanonicalGrid.
    Raises GridLookupError when the measurement is beyond every band or the
    matched cell is blank.
    """
    grid = normalize(grid)
    w = _match_band(grid.width_bands, width, "width")
    d = _match_band(grid.drop_bands, drop, "drop")
    price = grid.prices[d][w]
    if price is None:
        raise GridLookupError(
            f"No price at width band {grid.width_bands[w].label} / "
            f"drop band {grid.drop_bands[d].label}"
        )
    logger.debug("Grid lookup %gx%g -> %.2f", width, drop, price)
    return price
