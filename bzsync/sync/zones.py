"""Protected zones — workspace regions that survive template updates.

A protected zone is delimited by two marker lines carrying the same name::

    // @beztack-zone:start custom
    ...workspace-owned lines...
    // @beztack-zone:end custom

Merging starts from the template content. Outside zones the template
wins; inside a zone the workspace block replaces the template's block of
the same name verbatim.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

ZONE_START = "// @beztack-zone:start"
ZONE_END = "// @beztack-zone:end"

_MARKER_RE = re.compile(r"^// @beztack-zone:(?P<kind>start|end)\s+(?P<name>\S.*)$")


@dataclass
class MergeResult:
    """Merged content plus any zones that could not be carried over."""

    content: str
    conflicts: list[str] = field(default_factory=list)


def merge_with_protected_zones(current_content: str, template_content: str) -> MergeResult:
    """Merge workspace content into template content, preserving protected zones.

    Without zones in *current_content* the template replaces it outright.
    A zone the template no longer contains is reported as a conflict and
    its workspace block is dropped from the output.
    """
    protected_blocks = extract_zones(current_content)
    if not protected_blocks:
        return MergeResult(content=template_content)

    merged = template_content
    conflicts: list[str] = []

    for zone_name, block in protected_blocks.items():
        template_block = _extract_zone_by_name(template_content, zone_name)
        if template_block is None:
            conflicts.append(
                f"Protected zone '{zone_name}' no longer exists in template output."
            )
            continue

        merged = merged.replace(template_block, block, 1)

    return MergeResult(content=merged, conflicts=conflicts)


def extract_zones(content: str) -> dict[str, str]:
    """Return every well-formed zone in *content*, keyed by zone name.

    Each block includes its start and end marker lines. A start marker
    without a matching end marker is ignored. Opening a new zone before the
    current one closes abandons the current one.
    """
    zones: dict[str, str] = {}
    current_name: str | None = None
    block_lines: list[str] = []

    for line in content.split("\n"):
        marker = _parse_marker(line)

        if marker is not None and marker[0] == "start":
            current_name = marker[1]
            block_lines = [line]
            continue

        if current_name is not None:
            block_lines.append(line)
            if marker == ("end", current_name):
                zones[current_name] = "\n".join(block_lines)
                current_name = None
                block_lines = []

    return zones


def _extract_zone_by_name(content: str, zone_name: str) -> str | None:
    buffer: list[str] = []
    inside = False

    for line in content.split("\n"):
        marker = _parse_marker(line)
        if not inside:
            if marker == ("start", zone_name):
                inside = True
                buffer.append(line)
            continue

        buffer.append(line)
        if marker == ("end", zone_name):
            return "\n".join(buffer)

    return None


def _parse_marker(line: str) -> tuple[str, str] | None:
    match = _MARKER_RE.match(line.strip())
    if match is None:
        return None
    return match.group("kind"), match.group("name").strip()
