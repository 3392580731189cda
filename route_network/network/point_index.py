"""
Point index

Resolves textual endpoint references (a name and/or an LGD code) to
points. Sources disagree on spelling, casing and annotations, so several
lookup tables are tried in order of trust:

1. LGD code (exact)
2. Name (exact, then uppercased)
3. Base name (trailing "(...)" annotations stripped), then spelling
   variant (hyphen/space/underscore interchangeable)
4. Case-insensitive substring scan over every known name

Every resolution reports which strategy fired.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from .models import MatchStrategy, Point, PointResolution
from ..parsing.properties import is_null_value

_TRAILING_ANNOTATION = re.compile(r"\s*\([^()]*\)\s*$")
_SEPARATORS = re.compile(r"[\s\-_]+")


def base_name(name: str) -> str:
    """Strip trailing parenthetical annotations: 'Ramapur (GP) (new)' -> 'Ramapur'"""
    text = name.strip()
    while True:
        stripped = _TRAILING_ANNOTATION.sub("", text)
        if stripped == text or not stripped:
            return text
        text = stripped


def spelling_variant(name: str) -> str:
    """Uppercase with hyphens, underscores and whitespace collapsed to one space"""
    return _SEPARATORS.sub(" ", name.strip().upper()).strip()


def normalize_code(code: Any) -> str:
    """Canonical LGD code text ('' for missing/sentinel values)"""
    if is_null_value(code):
        return ""
    if isinstance(code, float) and code.is_integer():
        code = int(code)
    text = str(code).strip()
    # CSV round trips turn 12345 into "12345.0"
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    return "" if is_null_value(text) else text


class PointIndex:
    """Multi-strategy lookup over a point set"""

    def __init__(self, points: Iterable[Point] = ()):
        self.by_name: Dict[str, Point] = {}
        self.by_upper_name: Dict[str, Point] = {}
        self.by_code: Dict[str, Point] = {}
        self.by_base_name: Dict[str, Point] = {}
        self.by_variant: Dict[str, Point] = {}
        # (uppercased key, point) in insertion order for the substring scan
        self._scan_keys: List[Tuple[str, Point]] = []
        for point in points:
            self.add(point)

    def __len__(self) -> int:
        return len(self.by_name)

    @staticmethod
    def _put(table: Dict[str, Point], key: str, point: Point, label: str):
        if not key:
            return
        existing = table.get(key)
        if existing is None:
            table[key] = point
        elif existing is not point:
            logger.debug(f"Duplicate {label} key {key!r}: keeping {existing.name!r}, ignoring {point.name!r}")

    def add(self, point: Point):
        """Add a point to every table (first point wins on collisions)"""
        name = (point.name or "").strip()
        if name and name not in self.by_name:
            self._scan_keys.append((name.upper(), point))
        self._put(self.by_name, name, point, "name")
        self._put(self.by_upper_name, name.upper(), point, "upper-name")
        self._put(self.by_code, normalize_code(point.lgd_code), point, "lgd_code")
        self._put(self.by_base_name, base_name(name).upper(), point, "base-name")
        self._put(self.by_variant, spelling_variant(name), point, "variant")
        self._put(self.by_variant, spelling_variant(base_name(name)), point, "variant")

    def resolve(self, name: Optional[str], code: Any = None) -> PointResolution:
        """
        Resolve an endpoint reference

        Args:
            name: Raw endpoint name (may be empty)
            code: Raw LGD code (ignored when empty or 'NULL'-like)

        Returns:
            PointResolution; point is None when every strategy misses
        """
        reference = "" if is_null_value(name) else str(name).strip()
        code_text = normalize_code(code)

        if code_text and code_text in self.by_code:
            return PointResolution(reference, self.by_code[code_text], MatchStrategy.CODE, code_text)

        if reference:
            if reference in self.by_name:
                return PointResolution(reference, self.by_name[reference], MatchStrategy.EXACT_NAME, code_text)
            upper = reference.upper()
            if upper in self.by_upper_name:
                return PointResolution(reference, self.by_upper_name[upper], MatchStrategy.UPPER_NAME, code_text)

            base = base_name(reference).upper()
            if base in self.by_base_name:
                return PointResolution(reference, self.by_base_name[base], MatchStrategy.BASE_NAME, code_text)
            variant = spelling_variant(reference)
            if variant in self.by_variant:
                return PointResolution(reference, self.by_variant[variant], MatchStrategy.VARIANT, code_text)
            variant = spelling_variant(base_name(reference))
            if variant in self.by_variant:
                return PointResolution(reference, self.by_variant[variant], MatchStrategy.VARIANT, code_text)

            # Last resort
            for key, point in self._scan_keys:
                if upper in key or key in upper:
                    logger.debug(f"Resolved {reference!r} to {point.name!r} by substring")
                    return PointResolution(reference, point, MatchStrategy.SUBSTRING, code_text)

        return PointResolution(reference, None, MatchStrategy.UNRESOLVED, code_text)

    def resolve_point(self, name: Optional[str], code: Any = None) -> Optional[Point]:
        return self.resolve(name, code).point
