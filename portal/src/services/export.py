"""
CSV export of monthly benchmarks.

Produces one column per site and one row per calendar month, matching the
benchmark table administrators download from the dashboard.

CHANGELOG:
- 2026-10-10: Initial creation (STORY-110)

TODO:
- None
"""

import csv
import io
from collections.abc import Iterable

from portal.src.stores.base import Document

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)  # fmt: skip


def _format_kwh(value: float) -> str:
    """Render whole numbers without a trailing ``.0``."""
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def benchmarks_to_csv(documents: Iterable[Document]) -> str:
    """Render benchmark documents as a Month x Site CSV table.

    Args:
        documents: Stored benchmark documents, in the desired column order.

    Returns:
        str: CSV text with a ``Month`` header column; months a site has no
        benchmark for are left empty.
    """
    docs = list(documents)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Month", *(doc.get("siteName") or doc["siteId"] for doc in docs)])

    for month_index, month_name in enumerate(MONTH_NAMES, start=1):
        row = [month_name]
        for doc in docs:
            value = doc.get("monthly", {}).get(str(month_index))
            row.append("" if value is None else _format_kwh(value))
        writer.writerow(row)

    return buffer.getvalue()
