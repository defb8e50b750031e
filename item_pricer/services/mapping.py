from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import ValidationError

"""Field mapping resolution.

When the pricing service cannot find the required columns in a sheet, the user
maps canonical fields onto the detected headers. resolve_mapping() validates such
a selection; suggest_mapping() pre-fills it from common header spellings.

Both are pure: they look at header texts only, never at the RawTable.
"""

__all__ = [
    "FieldSpec",
    "FIELD_SPECS",
    "REQUIRED_FIELDS",
    "MappingResolution",
    "resolve_mapping",
    "suggest_mapping",
    "require_complete",
    "validate_tolerance",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """Canonical input field.

    Attributes:
        name: Canonical name sent to the pricing service (e.g. "Purchase Price")
        required: Submission is blocked while a required field is unmapped
        keywords: Groups of words; a header matches a group when it contains every
            word of it. Groups are tried in order.
        excludes: Words that disqualify a header
    """
    name: str
    required: bool = False
    keywords: tuple[tuple[str, ...], ...] = ()
    excludes: tuple[str, ...] = ()

    def matches(self, header: str) -> int | None:
        """Index of the first keyword group matching `header`, or None."""
        words = header.strip().lower()
        if any(_contains(words, word) for word in self.excludes):
            return None
        for rank, group in enumerate(self.keywords):
            if all(_contains(words, word) for word in group):
                return rank
        return None


def _contains(text: str, word: str) -> bool:
    # short words must match as whole words ("age" is not in "average")
    if len(word) <= 3 and word.isalpha():
        return re.search(rf"\b{re.escape(word)}\b", text) is not None
    return word in text


FIELD_SPECS: tuple[FieldSpec, ...] = (
    FieldSpec("Description", required=True, keywords=(("description",), ("desc",))),
    FieldSpec("QTY", required=True, keywords=(("quantity",), ("qty",), ("lost",))),
    FieldSpec(
        "Purchase Price",
        required=True,
        keywords=(("cost", "replace"), ("purchase", "price"), ("price",)),
        excludes=("total",),
    ),
    FieldSpec("Room", keywords=(("room",),)),
    FieldSpec("Model#", keywords=(("model",),)),
    FieldSpec("Age (Years)", keywords=(("age",),)),
    FieldSpec("Condition", keywords=(("condition",),)),
    FieldSpec("Original Source", keywords=(("vendor",), ("source",))),
    FieldSpec("Total Purchase Price", keywords=(("total", "cost"), ("total", "purchase"), ("total", "price"))),
)

REQUIRED_FIELDS = tuple(target.name for target in FIELD_SPECS if target.required)


@dataclass(frozen=True)
class MappingResolution:
    mapping: dict[str, str] = field(default_factory=dict)  # canonical field -> header
    missing_required: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_required


def resolve_mapping(
    headers: Sequence[str],
    selections: Mapping[str, Any],
    fields: Sequence[FieldSpec] = FIELD_SPECS,
) -> MappingResolution:
    """Validate a user field selection against the detected headers.

    Args:
        headers: Header texts of the detected header row.
        selections: canonical field -> chosen header. Empty, None or unknown
            headers count as unmapped.
        fields: Canonical field definitions.

    Returns:
        MappingResolution with the valid part of the mapping and the required
        fields still missing, in field order.
    """
    available = {str(h).strip() for h in headers if str(h).strip()}
    known = {target.name for target in fields}

    mapping: dict[str, str] = {}
    for name, header in selections.items():
        if name not in known:
            logger.debug("ignoring selection for unknown field=%r", name)
            continue
        chosen = str(header).strip() if header is not None else ""
        if chosen and chosen in available:
            mapping[name] = chosen
        elif chosen:
            logger.debug("field=%s mapped to unknown header=%r", name, chosen)

    missing = [target.name for target in fields if target.required and target.name not in mapping]
    return MappingResolution(mapping=mapping, missing_required=missing)


def suggest_mapping(headers: Sequence[str], fields: Sequence[FieldSpec] = FIELD_SPECS) -> dict[str, str]:
    """Pre-fill a selection from common header spellings.

    Each header is used for at most one field; required fields pick first.
    """
    texts = [str(h).strip() for h in headers if str(h).strip()]
    used: set[str] = set()
    suggestion: dict[str, str] = {}
    ordered = sorted(fields, key=lambda target: not target.required)
    for target in ordered:
        best: tuple[int, int] | None = None
        for position, header in enumerate(texts):
            if header in used:
                continue
            rank = target.matches(header)
            if rank is not None and (best is None or (rank, position) < best):
                best = (rank, position)
        if best is not None:
            header = texts[best[1]]
            suggestion[target.name] = header
            used.add(header)
    return suggestion


def require_complete(resolution: MappingResolution) -> dict[str, str]:
    """Mapping of a complete resolution; ValidationError while required fields are missing."""
    if resolution.missing_required:
        raise ValidationError(
            "Please map all required fields: " + ", ".join(resolution.missing_required),
            missing_fields=resolution.missing_required,
        )
    return dict(resolution.mapping)


def validate_tolerance(value: Any, options: Sequence[int]) -> int:
    """Tolerance percentage as int; ValidationError unless positive and configured."""
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid tolerance: {value!r}") from e
    if number <= 0 or number != int(number):
        raise ValidationError(f"Invalid tolerance: {value!r}")
    tolerance = int(number)
    if tolerance not in options:
        raise ValidationError(
            f"Invalid tolerance: {tolerance}. Choose one of: {', '.join(str(o) for o in options)}"
        )
    return tolerance
