"""Message normalizer: collapse variable data into placeholder tags.

The result is a template used only for comparing messages, never for
display.
"""

import re

# Ordered normalization rules.
# Order matters: more specific patterns must come first or a coarser rule
# eats part of the match (a UUID is five hex runs).
NORMALIZATION_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\b[0-9a-f]{8}(?:-[0-9a-f]{4}){3}-[0-9a-f]{12}\b", re.ASCII), "UUID"),
    (re.compile(r"\b[0-9a-f]{32}\b", re.ASCII), "ID_LONG"),
    (re.compile(r"\b[0-9a-f]{8}\b", re.ASCII), "ID_SHORT"),
    (re.compile(r"\b[0-9a-f]{6,31}\b", re.ASCII), "ID"),
    # yyyy-mm-dd, then mm-dd-yyyy
    (re.compile(r"\d{4}[-/]\d{1,2}[-/]\d{1,2}", re.ASCII), "DATE"),
    (re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}", re.ASCII), "DATE"),
    (re.compile(r"\d{1,2}:\d{1,2}(?::\d{1,2})?(?:\.\d+)?", re.ASCII), "TIME"),
    (re.compile(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}", re.ASCII), "IP"),
    (re.compile(r"(?:(?:[0-9a-f]{1,4}:){7}|::)[0-9a-f]{1,4}", re.ASCII), "IPV6"),
    # Durations never start inside a word, so the 6 of an IPV6 tag stays put
    (re.compile(r"(?<![\w.])\d+(?:\.\d+)?ms", re.ASCII), "DURATION_MS"),
    (re.compile(r"(?<![\w.])\d+(?:\.\d+)?s", re.ASCII), "DURATION_S"),
    (re.compile(r"(?<![\w.])\d+(?:\.\d+)?ns", re.ASCII), "DURATION_NS"),
    (re.compile(r"(?<![\w.])\d+(?:\.\d+)?[mu]s", re.ASCII), "DURATION_US"),
    (re.compile(r"\b\d{1,9}\b", re.ASCII), "NUMBER"),
    (re.compile(r'"[^"]*"'), "STRING"),
    (re.compile(r"'[^']*'"), "STRING"),
    (re.compile(r"\b(?:[a-zA-Z0-9_-]+\.)+[a-zA-Z0-9_-]+\b", re.ASCII), "PATH"),
    (re.compile(r"\b\d+\.\d+\.\d+\b", re.ASCII), "VERSION"),
]

PLACEHOLDER_TAGS: frozenset[str] = frozenset(tag for _, tag in NORMALIZATION_RULES)

# Runs of placeholder tags not glued to other capitals. Lower-casing leaves
# these alone so normalizing a template is a no-op.
_TAG_RUN_RE = re.compile(
    r"(?<![A-Z])(?:%s)+(?![A-Z])"
    % "|".join(sorted(PLACEHOLDER_TAGS, key=len, reverse=True))
)

_WHITESPACE_RE = re.compile(r"\s+")


def _lower_keep_tags(message: str) -> str:
    parts = []
    pos = 0
    for m in _TAG_RUN_RE.finditer(message):
        parts.append(message[pos:m.start()].lower())
        parts.append(m.group(0))
        pos = m.end()
    parts.append(message[pos:].lower())
    return "".join(parts)


def normalize_message(message: str) -> str:
    """Normalize a log message into a comparable template.

    Deterministic and idempotent: normalize_message(normalize_message(x))
    == normalize_message(x).
    """
    if not message:
        return ""

    normalized = _lower_keep_tags(message)
    for pattern, tag in NORMALIZATION_RULES:
        normalized = pattern.sub(tag, normalized)

    return _WHITESPACE_RE.sub(" ", normalized).strip()
