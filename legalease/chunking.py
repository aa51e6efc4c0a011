from __future__ import annotations

CHUNK_SIZE = 50_000
MIN_BREAK_RATIO = 0.5
BREAK_CHARACTERS = (".", "!", "?", "।", "\n")


def _last_break_point(text: str, start: int, end: int) -> int:
    # Positions up to and including `end` are eligible, like a window that
    # may stretch by one character to keep its terminator.
    return max(text.rfind(char, start, end + 1) for char in BREAK_CHARACTERS)


def split_text(text: str, chunk_size: int = CHUNK_SIZE) -> list[str]:
    """Split oversized text into sentence-aware windows of about ``chunk_size`` chars.

    Text within the limit comes back as a single chunk, untouched. Longer text
    is cut at the last sentence terminator or newline inside each window, but
    only when that point lies past the window's midpoint; otherwise the raw
    boundary is used. Chunks are stripped and empty ones are dropped, so empty
    or whitespace-only text yields no chunks rather than one empty chunk.
    """
    if chunk_size <= 0:
        raise ValueError("Chunk size must be greater than zero.")

    if len(text) <= chunk_size:
        return [text] if text.strip() else []

    chunks: list[str] = []
    start = 0
    length = len(text)

    while start < length:
        end = start + chunk_size
        if end < length:
            break_point = _last_break_point(text, start, end)
            if break_point > start + chunk_size * MIN_BREAK_RATIO:
                end = break_point + 1
        end = min(end, length)

        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        start = end

    return chunks
