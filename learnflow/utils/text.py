"""
Text helpers shared by the agents (cleaning, truncation, elision).
"""
import re


_WHITESPACE_RE = re.compile(r"\s+")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_MARKUP_RE = re.compile(r"<[^>]*>")

ELISION_MARKER = "\n\n... [content truncated] ...\n\n"


def clean_text(text: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", str(text)).strip()


def strip_residue(text: str) -> str:
    """Remove control characters and leftover markup tags."""
    if not text:
        return ""
    text = _CONTROL_CHARS_RE.sub("", text)
    return _MARKUP_RE.sub("", text)


def truncate_text(text: str, max_length: int) -> str:
    """
    Cap text at max_length characters, marking the cut with '...'.

    >>> truncate_text("abcdefgh", 6)
    'abc...'
    """
    if not text or len(text) <= max_length:
        return text or ""
    if max_length <= 3:
        return text[:max_length]
    return text[: max_length - 3] + "..."


def cap_text(text: str, max_length: int) -> str:
    """Hard cap without marker; result is whitespace-trimmed so capping twice is a no-op."""
    return clean_text(text)[:max_length].rstrip()


def truncate_middle(text: str, max_length: int, head_ratio: float) -> str:
    """
    Keep the head and the tail of an oversized text, joined by an elision marker.

    The head takes ``head_ratio`` of the budget, the tail what is left after
    reserving 50 characters for the marker.
    """
    if not text or len(text) <= max_length:
        return text or ""

    head_length = int(max_length * head_ratio)
    tail_length = max(max_length - head_length - 50, 0)
    head = text[:head_length]
    tail = text[len(text) - tail_length:] if tail_length else ""
    return f"{head}{ELISION_MARKER}{tail}"


def truncate_paragraphs(text: str, max_length: int) -> str:
    """
    Keep whole paragraphs while they fit; fall back to a hard cut if even the
    first paragraph is too long.
    """
    if not text or len(text) <= max_length:
        return text or ""

    kept = []
    used = 0
    for paragraph in text.split("\n"):
        added = len(paragraph) + (1 if kept else 0)
        if used + added > max_length:
            break
        kept.append(paragraph)
        used += added

    result = "\n".join(kept).strip()
    if not result:
        return truncate_text(text, max_length)
    return result


def normalize_whitespace(text: str) -> str:
    """
    Collapse spaces inside lines and runs of blank lines, keeping paragraph
    breaks so later paragraph-aware truncation still works.
    """
    if not text:
        return ""
    lines = [" ".join(line.split()) for line in text.splitlines()]
    joined = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", joined).strip()
