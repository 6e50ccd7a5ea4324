"""
Guest card number handling.

Card numbers arrive either from a magnetic-stripe reader acting as a
keyboard (e.g. ";111097412=2410311109?") or typed by hand. Both are
reduced to a plain digit string.
"""
import re
from collections import Counter
from typing import Any, Iterable

MIN_LENGTH = 6
MAX_LENGTH = 12

SWIPE_SENTINELS = (";", "=", "?")

_NON_DIGITS = re.compile(r"[^0-9]")
_DIGIT_RUNS = re.compile(r"[0-9]+")
_FIELD_DELIMITERS = re.compile(r"[=?+]")
_VALID = re.compile(rf"[0-9]{{{MIN_LENGTH},{MAX_LENGTH}}}")


def _is_swipe(raw: str, digits: str) -> bool:
    return any(s in raw for s in SWIPE_SENTINELS) or len(digits) > MAX_LENGTH


def _longest_run(text: str) -> str:
    runs = _DIGIT_RUNS.findall(text)
    if not runs:
        return ""
    return max(runs, key=len)


def extract_card_number(raw: Any) -> str:
    """
    Extract the card number from swipe data or manual entry.

    Swipe data (anything carrying a track sentinel, or more digits than a
    card number can hold) is cut at the first field delimiter and the
    longest run of digits before it is returned. Manual entry just has its
    non-digits removed.

    Never raises; returns "" when nothing usable is found.
    """
    if not raw or not isinstance(raw, str):
        return ""

    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        return ""

    if not _is_swipe(raw, digits):
        return digits

    prefix = _FIELD_DELIMITERS.split(raw, maxsplit=1)[0]
    return _longest_run(prefix)


def is_valid_card_number(card_number: Any) -> bool:
    """True for 6 to 12 decimal digits and nothing else."""
    if not isinstance(card_number, str):
        return False
    return _VALID.fullmatch(card_number) is not None


def format_card_number(card_number: Any) -> str:
    """Group a card number in blocks of four for display."""
    if not card_number or not isinstance(card_number, str):
        return ""
    return " ".join(card_number[i:i + 4] for i in range(0, len(card_number), 4))


def best_card_number(swipes: Iterable[Any]) -> str:
    """
    Pick the most frequently read valid card number across several swipes.

    Ties go to the number that was read first.
    """
    numbers = [extract_card_number(s) for s in swipes]
    counts = Counter(n for n in numbers if is_valid_card_number(n))
    if not counts:
        return ""
    return counts.most_common(1)[0][0]
