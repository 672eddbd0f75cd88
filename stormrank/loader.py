"""
Dataset loader (CSV -> RawEvent list)
=====================================

This module downloads the storm dataset (once, into a cache directory) and
converts each row into a `RawEvent` object.

Key ideas:
- Only the seven columns the analysis needs are read.
- Column names are matched tolerantly ("EVTYPE", "evtype", "Ev Type").
- Metric columns are validated up front: a non-numeric, missing or negative
  value stops the load with `DataValidationError` instead of being coerced
  to zero, which would corrupt the sums without any signal.
- Unit codes are kept verbatim; decoding them is the aggregator's job.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Optional, Union
import re
from urllib.parse import unquote

import pandas as pd
import requests
from loguru import logger

from .models import RawEvent

PathLike = Union[str, Path]

# logical field -> accepted column names
COLUMNS: Dict[str, tuple] = {
    "category": ("EVTYPE", "Event Type", "EVENT_TYPE"),
    "fatalities": ("FATALITIES", "Deaths"),
    "injuries": ("INJURIES",),
    "property_damage": ("PROPDMG", "Property Damage"),
    "property_unit": ("PROPDMGEXP", "Property Damage Exp"),
    "crop_damage": ("CROPDMG", "Crop Damage"),
    "crop_unit": ("CROPDMGEXP", "Crop Damage Exp"),
}

COUNT_FIELDS = ("fatalities", "injuries")
AMOUNT_FIELDS = ("property_damage", "crop_damage")
UNIT_FIELDS = ("property_unit", "crop_unit")


class DataValidationError(ValueError):
    """The dataset does not satisfy the loader contract."""


class MissingColumnError(DataValidationError, KeyError):
    pass


def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise MissingColumnError(f"Missing required column. Tried={names}. Available={cols}")


def resolve_columns(df: pd.DataFrame) -> Dict[str, str]:
    """Map each logical field to the matching column of `df`."""
    return {field: _col(df, *names) for field, names in COLUMNS.items()}


# -----------------------------
# Download / cache
# -----------------------------

def fetch_dataset(url: str, cache_dir: PathLike, *, timeout: float = 120.0, force: bool = False) -> Path:
    """Download `url` into `cache_dir` unless a cached copy already exists.

    Returns the local path. HTTP and connection errors propagate.
    """
    cache = Path(cache_dir)
    cache.mkdir(parents=True, exist_ok=True)
    name = unquote(url.rstrip("/").rsplit("/", 1)[-1])
    name = name.rsplit("/", 1)[-1] or "dataset.csv.bz2"
    target = cache / name

    if target.exists() and target.stat().st_size > 0 and not force:
        logger.info(f"Using cached dataset {target}")
        return target

    logger.info(f"Downloading {url} -> {target}")
    partial = target.with_name(target.name + ".part")
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with open(partial, "wb") as f:
            for chunk in response.iter_content(chunk_size=1 << 20):
                if chunk:
                    f.write(chunk)
    partial.replace(target)
    logger.info(f"Downloaded {target.stat().st_size / 1e6:.1f} MB")
    return target


# -----------------------------
# Reading / validation
# -----------------------------

def read_storm_table(path: PathLike, nrows: Optional[int] = None) -> pd.DataFrame:
    """Read the dataset (CSV, optionally bz2/gzip compressed, or .xlsx).

    Legacy `.xls` workbooks are rejected; openpyxl only reads `.xlsx`.
    Files pandas cannot parse raise `DataValidationError`.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset not found: {p}")

    suffix = p.suffix.lower()
    if suffix == ".xls":
        raise DataValidationError(f"Legacy .xls workbooks are not supported, save {p.name} as .xlsx or CSV")

    try:
        if suffix == ".xlsx":
            df = pd.read_excel(p, engine="openpyxl", nrows=nrows)
        else:
            wanted = {_norm(n) for names in COLUMNS.values() for n in names}
            df = pd.read_csv(
                p,
                usecols=lambda c: _norm(c) in wanted,
                nrows=nrows,
                low_memory=False,
            )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataValidationError(f"Cannot parse {p.name}: {e}") from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    logger.info(f"Read {len(df)} rows from {p.name}")
    return df


def _numeric(df: pd.DataFrame, col: str) -> pd.Series:
    values = pd.to_numeric(df[col], errors="coerce")
    bad = values.isna() | (values < 0)
    if bad.any():
        rows = list(df.index[bad][:5])
        samples = [df[col].loc[r] for r in rows]
        raise DataValidationError(
            f"Column {col!r} has {int(bad.sum())} missing, non-numeric or negative value(s); "
            f"first rows={rows} values={samples}"
        )
    return values


def events_from_frame(df: pd.DataFrame) -> List[RawEvent]:
    """Validate `df` and convert every row into a RawEvent."""
    cols = resolve_columns(df)

    counts = {}
    for field in COUNT_FIELDS:
        values = _numeric(df, cols[field])
        if not (values == values.round()).all():
            raise DataValidationError(f"Column {cols[field]!r} must hold whole numbers")
        counts[field] = values.astype("int64")
    amounts = {field: _numeric(df, cols[field]).astype("float64") for field in AMOUNT_FIELDS}
    categories = df[cols["category"]].map(_to_str)
    units = {field: df[cols[field]].map(_to_str) for field in UNIT_FIELDS}

    events: List[RawEvent] = []
    for i, (cat, fat, inj, prop, pu, crop, cu) in enumerate(zip(
        categories, counts["fatalities"], counts["injuries"],
        amounts["property_damage"], units["property_unit"],
        amounts["crop_damage"], units["crop_unit"],
    )):
        events.append(RawEvent(
            event_id=i,
            category=cat,
            fatalities=int(fat),
            injuries=int(inj),
            property_damage=float(prop),
            property_unit=pu,
            crop_damage=float(crop),
            crop_unit=cu,
        ))
    return events


def load_storm_events(path: PathLike, nrows: Optional[int] = None) -> List[RawEvent]:
    """Read + validate + convert in one call."""
    return events_from_frame(read_storm_table(path, nrows=nrows))
