"""Dashboard statistics computed from performance records.

Every function here is a pure transform of an in-memory record sequence.
Records may be ``Performance`` rows or plain mappings with the same keys;
a missing field reads as empty rather than raising.
"""
import datetime as dt
import re
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

from schemas import (
    ArtistBucket,
    Dashboard,
    DrillDownSelection,
    MonthlyBucket,
    MonthlyDistribution,
    ProvinceBucket,
)

DEFAULT_LOCALE = "zh-CN"
DEFAULT_TOP_N = 10

MONTH_LABELS = {
    "zh-CN": [
        "一月", "二月", "三月", "四月", "五月", "六月",
        "七月", "八月", "九月", "十月", "十一月", "十二月",
    ],
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
}

# Administrative suffixes removed (anywhere in the name) before grouping
PROVINCE_SUFFIXES = ("省", "自治区", "维吾尔", "回族", "壮族", "特别行政区")
_PROVINCE_SUFFIX_RE = re.compile("|".join(re.escape(s) for s in PROVINCE_SUFFIXES))


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def parse_record_date(value: Any) -> dt.date | None:
    """Return the calendar date of ``value``, or None if it has none."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return dt.datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def month_labels(locale: str = DEFAULT_LOCALE) -> list[str]:
    """The twelve month labels, January first, for ``locale``."""
    try:
        return MONTH_LABELS[locale]
    except KeyError:
        raise ValueError(
            f"Unsupported locale: {locale}. Must be one of: {sorted(MONTH_LABELS)}"
        ) from None


def record_month(record: Any, locale: str = DEFAULT_LOCALE) -> str | None:
    """Month label of the record's performance date, None when undated."""
    labels = month_labels(locale)
    performance_date = parse_record_date(_field(record, "date"))
    if performance_date is None:
        return None
    return labels[performance_date.month - 1]


def normalize_province(province: str | None) -> str:
    """Strip administrative suffixes, e.g. '广东省' -> '广东'."""
    return _PROVINCE_SUFFIX_RE.sub("", province or "")


def compute_monthly_distribution(
    records: Iterable[Any], locale: str = DEFAULT_LOCALE
) -> MonthlyDistribution:
    """
    Count records per calendar month.

    All twelve months are present, zero-filled, in January..December order.
    Records without a parseable date are left out, so ``total`` (the sum of
    the buckets) can be lower than the number of records.
    """
    counts = dict.fromkeys(month_labels(locale), 0)

    for record in records:
        month = record_month(record, locale)
        if month is not None:
            counts[month] += 1

    buckets = [MonthlyBucket(month=month, count=count) for month, count in counts.items()]
    return MonthlyDistribution(buckets=buckets, total=sum(counts.values()))


def compute_artist_ranking(
    records: Iterable[Any], top_n: int = DEFAULT_TOP_N
) -> list[ArtistBucket]:
    """
    Appearance count per exact artist name, highest first, over all records.

    Ties keep the order in which artists were first seen.
    """
    if top_n <= 0:
        return []

    counts = defaultdict(int)
    for record in records:
        counts[_field(record, "artist") or ""] += 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [ArtistBucket(artist=artist, count=count) for artist, count in ranked[:top_n]]


def compute_province_ranking(
    records: Iterable[Any], top_n: int = DEFAULT_TOP_N
) -> list[ProvinceBucket]:
    """Appearance count per normalized province, highest first."""
    if top_n <= 0:
        return []

    counts = defaultdict(int)
    for record in records:
        counts[normalize_province(_field(record, "province"))] += 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [ProvinceBucket(province=province, count=count) for province, count in ranked[:top_n]]


def _newest_first(records: list[Any]) -> list[Any]:
    # Undated records sort last; equal dates keep input order
    return sorted(
        records,
        key=lambda r: parse_record_date(_field(r, "date")) or dt.date.min,
        reverse=True,
    )


def select_drill_down(
    kind: str, key: str, records: Iterable[Any], locale: str = DEFAULT_LOCALE
) -> DrillDownSelection:
    """
    Records behind one chart bucket.

    ``kind`` is 'month' (key is a month label in ``locale``), 'artist'
    (exact name) or 'province' (normalized name). Matches come back newest
    performance first for every kind. No match gives an empty selection.
    """
    if kind == "month":
        month_labels(locale)  # reject unknown locales even with no records
        matches = [r for r in records if record_month(r, locale) == key]
    elif kind == "artist":
        matches = [r for r in records if (_field(r, "artist") or "") == key]
    elif kind == "province":
        matches = [r for r in records if normalize_province(_field(r, "province")) == key]
    else:
        raise ValueError(f"Unknown drill-down kind: {kind}. Must be one of: month, artist, province")

    return DrillDownSelection(kind=kind, key=key, matching_records=_newest_first(matches))


def build_dashboard(
    records: Iterable[Any], top_n: int = DEFAULT_TOP_N, locale: str = DEFAULT_LOCALE
) -> Dashboard:
    """All dashboard views for one snapshot of records."""
    records = list(records)
    return Dashboard(
        record_count=len(records),
        monthly=compute_monthly_distribution(records, locale),
        artists=compute_artist_ranking(records, top_n),
        provinces=compute_province_ranking(records, top_n),
    )
