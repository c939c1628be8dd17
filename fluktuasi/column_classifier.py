"""
column_classifier.py — find the date, classification and remark columns of a
detail sheet without a fixed schema.

Each detector tries its keyword list against the headers first (left to
right, first hit wins) and only then samples the data rows. Results are
``Detection`` values so callers can see whether a column was actually found
or a default was substituted.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Sequence

from fluktuasi.config import DEFAULT_SETTINGS, Settings
from fluktuasi.models import ColumnRoles, Detection
from fluktuasi.normalize import cell_text, is_blank, looks_like_date, maybe_parse_number

logger = logging.getLogger(__name__)


def find_keyword_column(
    headers: Sequence[str],
    keywords: Iterable[str],
    exclude: Iterable[int] = (),
) -> int | None:
    # a keyword must start a word: "date" matches "Posting Date" but not "Updated by"
    patterns = [
        re.compile(r"(?<![a-z0-9])" + re.escape(keyword.strip().lower()))
        for keyword in keywords
        if keyword.strip()
    ]
    skipped = set(exclude)
    for index, header in enumerate(headers):
        if index in skipped:
            continue
        lowered = str(header).strip().lower()
        if not lowered:
            continue
        if any(pattern.search(lowered) for pattern in patterns):
            return index
    return None


def column_samples(rows: Sequence[Sequence[Any]], index: int) -> list[Any]:
    values = []
    for row in rows:
        value = row[index] if index < len(row) else None
        if not is_blank(value):
            values.append(value)
    return values


def date_score(values: list[Any]) -> float:
    if not values:
        return 0.0
    return sum(1 for value in values if looks_like_date(value)) / len(values)


def text_length_score(values: list[Any]) -> float:
    texts = [
        cell_text(value)
        for value in values
        if maybe_parse_number(value) is None and not looks_like_date(value)
    ]
    if not texts:
        return 0.0
    return sum(len(text) for text in texts) / len(texts)


def detect_date_column(
    headers: Sequence[str],
    sample_rows: Sequence[Sequence[Any]],
    settings: Settings = DEFAULT_SETTINGS,
) -> Detection:
    hit = find_keyword_column(headers, settings.date_keywords)
    if hit is not None:
        return Detection(hit, "keyword", 1.0, f"header '{headers[hit]}' matched a date keyword")

    best_index: int | None = None
    best_score = 0.0
    for index in range(len(headers)):
        score = date_score(column_samples(sample_rows, index))
        if score > best_score:
            best_index, best_score = index, score
    if best_index is not None and best_score > settings.date_score_threshold:
        return Detection(
            best_index,
            "statistical",
            round(best_score, 3),
            f"{best_score:.0%} of sampled values in '{headers[best_index]}' look like dates",
        )
    return Detection(None, "fallback", round(best_score, 3), "no date column found; periods left blank")


def detect_classification_column(
    headers: Sequence[str],
    sample_rows: Sequence[Sequence[Any]],
    date_index: int | None,
    settings: Settings = DEFAULT_SETTINGS,
) -> Detection:
    excluded = [] if date_index is None else [date_index]
    hit = find_keyword_column(headers, settings.classification_keywords, exclude=excluded)
    if hit is not None:
        return Detection(hit, "keyword", 1.0, f"header '{headers[hit]}' matched a classification keyword")

    scores = []
    for index in range(len(headers)):
        if index == date_index:
            continue
        scores.append((text_length_score(column_samples(sample_rows, index)), index))
    best_score, best_index = max(scores, key=lambda item: (item[0], -item[1]), default=(0.0, None))
    if best_index is None or best_score <= 0:
        return Detection(None, "fallback", 0.0, "no free-text column found; classification left blank")
    # confidence saturates around 40 characters of average text
    confidence = round(min(best_score / 40.0, 1.0), 3)
    return Detection(
        best_index,
        "statistical",
        confidence,
        f"'{headers[best_index]}' has the longest free text (avg {best_score:.1f} chars)",
    )


def detect_remark_column(
    headers: Sequence[str],
    classification_index: int | None,
    settings: Settings = DEFAULT_SETTINGS,
) -> Detection:
    hit = find_keyword_column(headers, settings.remark_keywords)
    if hit is not None and hit != classification_index:
        return Detection(hit, "keyword", 1.0, f"header '{headers[hit]}' matched a remark keyword")
    if classification_index is None:
        return Detection(None, "fallback", 0.0, "no remark or classification column found")
    reason = (
        "remark keyword matched the classification column"
        if hit is not None
        else "no remark column found; reusing the classification column"
    )
    return Detection(classification_index, "alias", 0.5, reason)


def classify_columns(
    headers: Sequence[str],
    data_rows: Sequence[Sequence[Any]],
    settings: Settings = DEFAULT_SETTINGS,
) -> ColumnRoles:
    sample = list(data_rows[: settings.classifier_sample_rows])
    date = detect_date_column(headers, sample, settings)
    classification = detect_classification_column(headers, sample, date.value, settings)
    remark = detect_remark_column(headers, classification.value, settings)
    for role, detection in (("date", date), ("classification", classification), ("remark", remark)):
        logger.debug("%s column: %s (%s, %.2f) %s", role, detection.value, detection.source, detection.confidence, detection.reason)
    return ColumnRoles(date=date, classification=classification, remark=remark)
