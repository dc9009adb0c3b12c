"""Nesting context stack and bracket depth tracking."""

from __future__ import annotations

from .models import Context, ContextTag, Style

_TAG_STYLES = {
    ContextTag.BOLD: Style.BOLD,
    ContextTag.ITALIC: Style.ITALIC,
    ContextTag.UNDERLINE: Style.UNDERLINE,
}


class ContextStack:
    """Stack of active contexts with TEXT as a permanent floor.

    Entering a fenced code block snapshots the bracket depth and starts the
    block at depth 0; leaving it restores the snapshot. Emphasis and inline
    code contexts record the depth but leave it untouched on exit.

    Examples:
        stack = ContextStack()
        stack.push(ContextTag.PYTHON)
        stack.top  # ContextTag.PYTHON
    """

    def __init__(self):
        self._entries: list[Context] = [Context(ContextTag.TEXT)]
        self.depth = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def top(self) -> ContextTag:
        return self._entries[-1].tag

    @property
    def tags(self) -> list[ContextTag]:
        return [entry.tag for entry in self._entries]

    def push(self, tag: ContextTag) -> None:
        """Push a context, resetting the bracket depth when entering a fence.

        Raises:
            ValueError: If `tag` is the root TEXT context.
        """
        if tag is ContextTag.TEXT:
            raise ValueError("TEXT is the root context and cannot be pushed")
        self._entries.append(Context(tag, saved_depth=self.depth))
        if tag.is_fenced:
            self.depth = 0

    def pop(self) -> ContextTag:
        """Pop the innermost context and return its tag.

        Raises:
            IndexError: If only the root context remains.
        """
        if len(self._entries) == 1:
            raise IndexError("cannot pop the root TEXT context")
        entry = self._entries.pop()
        if entry.tag.is_fenced:
            self.depth = entry.saved_depth
        return entry.tag

    def contains(self, tag: ContextTag) -> bool:
        return any(entry.tag is tag for entry in self._entries)

    def in_code(self) -> bool:
        """Whether the innermost context is inline or fenced code."""
        return self.top.is_code

    def in_fence(self) -> bool:
        return any(entry.tag.is_fenced for entry in self._entries)

    def style(self) -> Style:
        """Combine the attributes of every active emphasis context."""
        style = Style.NONE
        for entry in self._entries:
            style |= _TAG_STYLES.get(entry.tag, Style.NONE)
        return style

    def open_bracket(self) -> int:
        """Increase the bracket depth and return the new depth."""
        self.depth += 1
        return self.depth

    def close_bracket(self) -> int:
        """Return the current depth, then decrease it without going below zero."""
        depth = self.depth
        self.depth = max(depth - 1, 0)
        return depth

    def reset_depth(self) -> None:
        self.depth = 0
