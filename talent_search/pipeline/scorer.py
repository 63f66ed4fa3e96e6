"""Rule-based textual relevance scoring for search hits.

Score range: 0-100 (clamped, never renormalized). Bonuses are additive:

  exact title match           +100
  title contains query        +80  (only when not an exact match)
  query word in a title word  +20 each
  description contains query  +30
  query word in a desc word   +10 each

Saturating at 100 is expected for multi-word hits; rankings depend on these
exact weights.
"""

import re

EXACT_TITLE_BONUS = 100
TITLE_SUBSTRING_BONUS = 80
TITLE_WORD_BONUS = 20
DESCRIPTION_SUBSTRING_BONUS = 30
DESCRIPTION_WORD_BONUS = 10
MAX_SCORE = 100

_WHITESPACE = re.compile(r"\s+")


def _words(text: str) -> list[str]:
    # re.split keeps empty edge tokens ("" -> [""]); str.split() would drop them
    # and change how empty or padded queries score.
    return _WHITESPACE.split(text)


def _word_matches(query_words: list[str], text_words: list[str]) -> int:
    """Count query words found as a substring of at least one text word."""
    return sum(1 for qw in query_words if any(qw in tw for tw in text_words))


def relevance_score(query: str, title: str, description: str) -> int:
    """Score how well ``title`` and ``description`` match ``query``.

    Args:
        query: Raw user query.
        title: Display title of the hit.
        description: Display summary of the hit.

    Returns:
        Integer score in [0, 100].
    """
    query_lower = query.lower()
    title_lower = title.lower()
    description_lower = description.lower()

    score = 0

    if title_lower == query_lower:
        score += EXACT_TITLE_BONUS
    elif query_lower in title_lower:
        score += TITLE_SUBSTRING_BONUS

    query_words = _words(query_lower)
    score += _word_matches(query_words, _words(title_lower)) * TITLE_WORD_BONUS

    if query_lower in description_lower:
        score += DESCRIPTION_SUBSTRING_BONUS

    score += _word_matches(query_words, _words(description_lower)) * DESCRIPTION_WORD_BONUS

    return min(score, MAX_SCORE)
