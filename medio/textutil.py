"""Small text helpers for display."""

_KIB = 1024
_MIB = _KIB * 1024
_GIB = _MIB * 1024


def truncate_str(text: str, max_chars: int) -> str:
    """Shorten text to at most max_chars characters, ending in an ellipsis if cut."""
    if len(text) <= max_chars:
        return text
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1 to truncate")
    return text[: max_chars - 1] + "…"


def format_size(num_bytes: int) -> str:
    """Render a byte count using binary units."""
    if num_bytes >= _GIB:
        return f"{num_bytes / _GIB:.1f} GiB"
    if num_bytes >= _MIB:
        return f"{num_bytes / _MIB:.1f} MiB"
    if num_bytes >= _KIB:
        return f"{num_bytes / _KIB:.1f} KiB"
    return f"{num_bytes} B"