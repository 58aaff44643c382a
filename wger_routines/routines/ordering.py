"""Sibling ordering for children appended under a parent.

Append-only: the new child goes after every existing sibling. Gaps left by
deletes are not filled and siblings are never renumbered. Two callers
appending to the same parent at once can read the same count and produce
duplicate orders; the remote store offers no compare-and-swap to prevent it.
"""

from collections.abc import Sized

# Slots and slot entries are always created fresh, so they start a sequence
FIRST_ORDER = 1


def next_order(existing_siblings: Sized) -> int:
    """Return the 1-based order for a child appended after ``existing_siblings``."""
    return len(existing_siblings) + 1
