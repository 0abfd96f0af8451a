from models import RenderedSnapshot, UsageSnapshot


def format_number(n: int) -> str:
    return f"{n:,}"


def render_snapshot(snapshot: UsageSnapshot, status: str = "") -> RenderedSnapshot:
    """Values the widget shows: bar position and the token detail line."""
    percent = snapshot.indicator_percent or 0.0
    fraction = min(max(percent / 100.0, 0.0), 1.0)

    detail = ""
    if snapshot.input_tokens_used > 0 or snapshot.output_tokens_used > 0:
        cache = max(snapshot.block_total_tokens - snapshot.input_tokens_used - snapshot.output_tokens_used, 0)
        detail = (
            f"Input: {snapshot.input_tokens_used} | Output: {snapshot.output_tokens_used}"
            f" | Cache: {format_number(cache)}"
        )
    return RenderedSnapshot(fraction=fraction, percent=percent, detail=detail, status=status)
