"""Presentation diff between an old and a new link-list entry."""


def render_diff(old_entry: str, new_entry: str) -> str:
    """All old lines as '- ', a blank separator, then all new lines as '+ '.

    Not a line-aligned diff: identical lines still show on both sides.
    Blank input lines are dropped.
    """
    lines: list[str] = []
    if old_entry:
        lines.extend(f"- {line}" for line in old_entry.split("\n") if line.strip())
        lines.append("")
    lines.extend(f"+ {line}" for line in new_entry.split("\n") if line.strip())
    return "\n".join(lines)
