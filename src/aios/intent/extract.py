"""
aios Parameter Extraction

Pulls tool parameters out of a clause using the tool's JSON schema and
its parameter hints. Extraction is purely lexical:

- enum strings: any enum value present as a word
- numbers: a number next to a hint ("8GB memory", "memory 8 gb")
- booleans: a hint present, negated by "no"/"without"/"disable" before it
- arrays of strings: option-like tokens ("--no-install-recommends")
- formatted strings: hostnames and absolute paths by shape
- other strings: the first free word after a hint ("install nginx")

Every consumed region is recorded so the resolver can tell how much of
the clause it explained.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from aios.tools.models import ToolDescriptor

STOPWORDS = frozenset({
    "a", "an", "the", "my", "me", "i", "to", "for", "on", "with", "of", "in", "at",
    "into", "this", "please", "now", "some", "can", "you", "could", "would", "want",
    "need", "like", "and", "using", "via", "by", "up", "server", "package", "is",
    "be", "should", "our", "your", "new",
})

PRONOUNS = frozenset({"it", "them", "that"})

NEGATORS = frozenset({"no", "without", "disable", "disabled", "not", "don't", "dont", "skip"})

_TOKEN = re.compile(r"[^\s,;]+")
_HOSTNAME = re.compile(r"(?<![\w.-])((?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,})(?![\w-])", re.IGNORECASE)
_PATH = re.compile(r"(?<!\S)(/[\w.@-]+(?:/[\w.@-]+)*/?)")
_OPTION = re.compile(r"(?<!\S)(--?[a-z0-9][\w=.-]*)", re.IGNORECASE)
_UNITS = r"(tb|tib|gb|gib|g|mb|mib|m)"
_NUMBER = r"(\d+(?:\.\d+)?)"


@dataclass
class Extraction:
    params: dict[str, Any] = field(default_factory=dict)
    spans: list[tuple[int, int]] = field(default_factory=list)


def tokens(text: str) -> list[tuple[int, int, str]]:
    return [(m.start(), m.end(), m.group().lower().strip(".!?\"'")) for m in _TOKEN.finditer(text)]


def overlaps(span: tuple[int, int], spans: list[tuple[int, int]]) -> bool:
    start, end = span
    return any(start < e and s < end for s, e in spans)


def phrase_pattern(phrase: str) -> re.Pattern:
    """Whole-word, case-insensitive, whitespace-tolerant phrase matcher."""
    words = [re.escape(w) for w in phrase.split()]
    return re.compile(r"(?<![\w-])" + r"\s+".join(words) + r"(?![\w-])", re.IGNORECASE)


def find_phrase(text: str, phrase: str, taken: list[tuple[int, int]] | None = None) -> re.Match | None:
    for match in phrase_pattern(phrase).finditer(text):
        if not taken or not overlaps(match.span(), taken):
            return match
    return None


def coverage(text: str, spans: list[tuple[int, int]]) -> float:
    """Share of non-stopword tokens that fall inside `spans`."""
    content = [(s, e) for s, e, word in tokens(text) if word and word not in STOPWORDS]
    if not content:
        return 0.0
    covered = sum(1 for span in content if overlaps(span, spans))
    return covered / len(content)


def extract_parameters(
    text: str,
    descriptor: ToolDescriptor,
    taken: list[tuple[int, int]] | None = None,
) -> Extraction:
    """Extract every parameter of `descriptor` mentioned in `text`.

    `taken` holds spans already claimed (e.g. by the matched keyword).
    Hints may overlap them, and so may enum values ("setup nginx" names
    the server type); other values never come from a taken span.
    """
    result = Extraction()
    reserved = list(taken or [])
    claimed: list[tuple[int, int]] = []
    properties = descriptor.properties
    hints = descriptor.parameter_hints

    def kind(prop: dict) -> str:
        if "enum" in prop:
            return "enum"
        ptype = prop.get("type")
        if ptype in ("number", "integer"):
            return "number"
        if ptype == "boolean":
            return "boolean"
        if ptype == "array":
            return "array"
        if ptype == "string" and prop.get("format") in ("hostname", "path"):
            return prop["format"]
        return "string"

    order = ["enum", "number", "boolean", "array", "hostname", "path", "string"]
    ordered = sorted(properties.items(), key=lambda kv: order.index(kind(kv[1])))

    for name, prop in ordered:
        prop_kind = kind(prop)
        blocked = claimed if prop_kind == "enum" else reserved + claimed
        found = _EXTRACTORS[prop_kind](text, name, prop, hints.get(name, []), blocked)
        if found is None:
            continue
        value, spans = found
        result.params[name] = value
        result.spans.extend(spans)
        claimed.extend(spans)

    return result


# ─── Per-type extractors ────────────────────────────────────
# Each returns (value, consumed spans) or None.


def _enum(text, name, prop, hints, claimed):
    # earliest mention wins, longest value on a tie
    best: tuple[Any, tuple[int, int]] | None = None
    for value in prop["enum"]:
        if not isinstance(value, str):
            continue
        match = find_phrase(text, value, claimed)
        if match is None:
            continue
        if best is None or (match.start(), -len(value)) < (best[1][0], -len(best[0])):
            best = (value, match.span())
    if best is None:
        return None
    return best[0], [best[1]]


def _number(text, name, prop, hints, claimed):
    for hint in hints:
        h = r"\s+".join(re.escape(w) for w in hint.split())
        patterns = (
            re.compile(rf"(?<![\w.]){_NUMBER}\s*{_UNITS}?\s+(?:of\s+)?{h}(?![\w-])", re.IGNORECASE),
            re.compile(rf"(?<![\w-]){h}\s*(?:of|=|:|to)?\s*{_NUMBER}\s*{_UNITS}?(?![\w.])", re.IGNORECASE),
        )
        for pattern in patterns:
            for match in pattern.finditer(text):
                if overlaps(match.span(), claimed):
                    continue
                value = _scale(float(match.group(1)), match.group(2), name)
                if prop.get("type") == "integer":
                    value = int(round(value))
                elif value == int(value):
                    value = int(value)
                return value, [match.span()]
    return None


def _scale(value: float, unit: str | None, name: str) -> float:
    unit = (unit or "").lower()
    if name.endswith("_gb"):
        if unit in ("mb", "mib", "m"):
            return value / 1024
        if unit in ("tb", "tib"):
            return value * 1024
    return value


def _boolean(text, name, prop, hints, claimed):
    for hint in hints:
        match = find_phrase(text, hint, claimed)
        if match is None:
            continue
        before = tokens(text[: match.start()])[-3:]
        for i in range(len(before) - 1, -1, -1):
            if before[i][2] in ("and", "but", "or"):
                before = before[i + 1:]
                break
        negator = next(((s, e) for s, e, w in reversed(before) if w in NEGATORS), None)
        if negator is not None:
            return False, [(negator[0], match.end())]
        return True, [match.span()]
    return None


def _array(text, name, prop, hints, claimed):
    items = prop.get("items", {})
    if items.get("type", "string") != "string":
        return None
    found = [m for m in _OPTION.finditer(text) if not overlaps(m.span(), claimed)]
    if not found:
        return None
    spans = [m.span() for m in found]
    for hint in hints:
        match = find_phrase(text, hint, claimed)
        if match:
            spans.append(match.span())
    return [m.group(1) for m in found], spans


def _hostname(text, name, prop, hints, claimed):
    for match in _HOSTNAME.finditer(text):
        if overlaps(match.span(), claimed):
            continue
        spans = [match.span()]
        for hint in hints:
            hint_match = find_phrase(text, hint, claimed)
            if hint_match:
                spans.append(hint_match.span())
        return match.group(1).lower(), spans
    return None


def _path(text, name, prop, hints, claimed):
    for match in _PATH.finditer(text):
        if overlaps(match.span(), claimed):
            continue
        return match.group(1).rstrip("/") or "/", [match.span()]
    return None


def _string(text, name, prop, hints, claimed):
    for hint in hints:
        for match in phrase_pattern(hint).finditer(text):
            for start, end, word in tokens(text[match.end():]):
                span = (match.end() + start, match.end() + end)
                if not word or word in STOPWORDS or overlaps(span, claimed):
                    continue
                raw = text[span[0]:span[1]].strip(".!?\"'")
                value = raw if raw.startswith("/") else raw.lower()
                return value, [match.span(), span]
    return None


_EXTRACTORS = {
    "enum": _enum,
    "number": _number,
    "boolean": _boolean,
    "array": _array,
    "hostname": _hostname,
    "path": _path,
    "string": _string,
}
