"""Similarity scoring for normalized messages: cheap checks first, edit distance last."""

# Shorter/longer length ratio at or below which two messages can't be one event
LENGTH_RATIO_CUTOFF = 0.5

# Word-count ratio below which the structures are too different to compare
WORD_RATIO_CUTOFF = 0.5

# Edit distance only runs when Jaccard reaches this share of the threshold
EDIT_DISTANCE_GATE = 0.8


def levenshtein_distance(s1: str, s2: str) -> int:
    """Unit-cost edit distance using two rows sized to the shorter string."""
    if s1 == s2:
        return 0
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    current = [0] * (len(s2) + 1)
    for i, c1 in enumerate(s1, 1):
        current[0] = i
        for j, c2 in enumerate(s2, 1):
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (c1 != c2),
            )
        previous, current = current, previous

    return previous[len(s2)]


def string_similarity(s1: str, s2: str) -> float:
    """1.0 for identical strings down to 0.0, case-insensitive."""
    if s1 == s2:
        return 1.0
    s1 = s1.lower()
    s2 = s2.lower()
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(s1, s2) / max_len


def jaccard_similarity(words1: list[str], words2: list[str]) -> float:
    """Shared distinct words over all distinct words."""
    set1 = set(words1)
    set2 = set(words2)
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


def is_similar_message(msg1: str, msg2: str, msg1_words: list[str], threshold: float) -> bool:
    """Decide whether two normalized messages describe the same event.

    msg1_words is msg1.split(), passed in so a caller comparing one message
    against many splits it once.
    """
    if msg1 == msg2:
        return True

    longest = max(len(msg1), len(msg2))
    if min(len(msg1), len(msg2)) / longest <= LENGTH_RATIO_CUTOFF:
        return False
    if msg2 in msg1 or msg1 in msg2:
        return True

    msg2_words = msg2.split()
    most_words = max(len(msg1_words), len(msg2_words))
    if most_words == 0:
        return False
    if min(len(msg1_words), len(msg2_words)) / most_words < WORD_RATIO_CUTOFF:
        return False

    jaccard = jaccard_similarity(msg1_words, msg2_words)
    if jaccard >= threshold:
        return True
    if jaccard < threshold * EDIT_DISTANCE_GATE:
        return False

    return string_similarity(msg1, msg2) >= threshold


def sources_similar(source1: str | None, source2: str | None, threshold: float = 0.7) -> bool:
    """Same call site, ignoring case, or close enough by edit distance."""
    source1 = source1 or ""
    source2 = source2 or ""
    if source1.lower() == source2.lower():
        return True
    return bool(source1) and bool(source2) and string_similarity(source1, source2) > threshold
