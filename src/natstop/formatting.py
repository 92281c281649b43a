"""Human-readable rendering of sizes and rates."""

KIB = 1024
MIB = KIB * 1024
GIB = MIB * 1024


def format_size(size: int | float) -> str:
    """Format a byte or message count as a human-readable string."""
    if size < KIB:
        return f"{size:.0f}"
    if size < MIB:
        return f"{size / KIB:.1f}K"
    if size < GIB:
        return f"{size / MIB:.1f}M"
    return f"{size / GIB:.1f}G"


def format_rate(rate: float) -> str:
    """Format a per-second rate."""
    return f"{rate:.1f}"


def format_percent_bar(percent: float, width: int = 20) -> str:
    """Build a Rich-markup bar for a 0-100 percentage."""
    filled = int(percent / 100 * width)
    filled = max(0, min(filled, width))
    return "[green]█[/green]" * filled + "[dim]░[/dim]" * (width - filled)
