"""
Diverse Row Sampling

Picks a small, scenario-covering subset of rows so prompts stay the same
size whether the file has ten rows or fifty thousand.

Selection order:
1. First row
2. Row with the highest value
3. Row with the lowest positive value
4. A zero / negative / missing value row
5. Row with the most populated cost columns
6. Middle row and 75th-percentile row
7. Random fill
"""

import random
from typing import Any, List, Mapping, Optional, Sequence

from profit_insights.transformation.cleaners import parse_decimal

DEFAULT_VALUE_KEYWORDS = ("total", "price", "amount", "revenue", "sales")
DEFAULT_COST_KEYWORDS = ("shipping", "fee", "tax", "cost")

# Rows inspected when deciding whether a column is numeric
NUMERIC_PROBE_ROWS = 5


def find_value_column(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    keywords: Sequence[str] = DEFAULT_VALUE_KEYWORDS,
) -> Optional[str]:
    """Pick the main numeric column, preferring names with a value keyword"""
    probe = rows[:NUMERIC_PROBE_ROWS]
    numeric = [
        h for h in headers
        if any(parse_decimal(row.get(h)) is not None for row in probe)
    ]
    for header in numeric:
        name = header.lower()
        if any(kw in name for kw in keywords):
            return header
    return numeric[0] if numeric else None


def select_diverse_sample(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    count: int = 9,
    rng: Optional[random.Random] = None,
    value_keywords: Sequence[str] = DEFAULT_VALUE_KEYWORDS,
    cost_keywords: Sequence[str] = DEFAULT_COST_KEYWORDS,
) -> List[Mapping[str, Any]]:
    """
    Select up to `count` rows covering typical and edge cases.

    When len(rows) <= count every row is returned unchanged, in order.
    The max-value and min-positive-value rows are searched across the
    whole file so they are always present when a value column exists.
    """
    if len(rows) <= count:
        return list(rows)

    rng = rng or random.Random()
    chosen: List[int] = []

    def add(idx: Optional[int]) -> None:
        if idx is not None and 0 <= idx < len(rows) and idx not in chosen and len(chosen) < count:
            chosen.append(idx)

    add(0)

    value_col = find_value_column(rows, headers, value_keywords)
    if value_col is not None:
        values = [parse_decimal(row.get(value_col)) for row in rows]

        max_idx = None
        min_idx = None
        for idx, value in enumerate(values):
            if value is None:
                continue
            if max_idx is None or value > values[max_idx]:
                max_idx = idx
            if value > 0 and (min_idx is None or value < values[min_idx]):
                min_idx = idx
        add(max_idx)
        add(min_idx)

        anomaly_idx = next(
            (i for i, v in enumerate(values) if i not in chosen and (v is None or v <= 0)),
            None,
        )
        add(anomaly_idx)

    cost_columns = [h for h in headers if any(kw in h.lower() for kw in cost_keywords)]
    if cost_columns:
        best_idx, best_count = None, 0
        for idx, row in enumerate(rows):
            if idx in chosen:
                continue
            populated = 0
            for col in cost_columns:
                amount = parse_decimal(row.get(col))
                if amount is not None and amount > 0:
                    populated += 1
            if populated > best_count:
                best_idx, best_count = idx, populated
        add(best_idx)

    add(len(rows) // 2)
    add(int(len(rows) * 0.75))

    remaining = [i for i in range(len(rows)) if i not in chosen]
    needed = min(count - len(chosen), len(remaining))
    if needed > 0:
        chosen.extend(rng.sample(remaining, needed))

    return [rows[i] for i in chosen]


def format_sample_for_prompt(
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]],
    total_rows: int,
) -> str:
    """Render sample rows as the text block sent to the assistant"""
    lines = [
        f"Columns: {', '.join(headers)}",
        "",
        f"Sample rows ({len(sample_rows)} diverse examples):",
    ]
    for i, row in enumerate(sample_rows, start=1):
        cells = " | ".join(
            f"{h}: {row.get(h) if row.get(h) is not None else 'N/A'}" for h in headers
        )
        lines.append(f"Row {i}: {cells}")
    lines.append("")
    lines.append(f"Total rows in file: {total_rows}")
    return "\n".join(lines)
