"""Series display names built from ``{{label}}`` legend templates."""

from __future__ import annotations

from collections.abc import Mapping

OPEN = "{{"
CLOSE = "}}"


def expand_legend(template: str, labels: Mapping[str, str] | None, *, default: str = "") -> str:
    """Substitute ``{{key}}`` placeholders in ``template`` with label values.

    An empty template returns ``default``. A template without both ``{{`` and
    ``}}`` is returned trimmed. Keys missing from ``labels`` expand to an empty
    string.
    """

    if not template:
        return default

    legend = template.strip()
    if OPEN not in legend or CLOSE not in legend:
        return legend

    values = labels or {}
    pieces: list[str] = []
    fragments = legend.split(OPEN)
    for index, fragment in enumerate(fragments):
        # A fragment before the first "{{" is never a placeholder.
        if index == 0 or CLOSE not in fragment:
            continue
        pieces.append(fragments[index - 1].split(CLOSE)[-1])
        pieces.append(values.get(fragment.split(CLOSE)[0], ""))

    if not legend.endswith(CLOSE):
        pieces.append(legend.split(CLOSE)[-1])
    return "".join(pieces)
