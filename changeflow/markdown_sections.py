"""Level-2 section extraction for markdown documents.

Sections are introduced by ``## Header`` lines. Deeper headers (``###``)
belong to the surrounding section and never start or end one.
"""

from __future__ import annotations

import re
from typing import List, Optional

SECTION_HEADER_PATTERN = re.compile(r"^## (.+)$")


def extract_section(content: str, section_name: str) -> Optional[str]:
    """Return the named section including its header, or None.

    The name is compared case-insensitively after trimming. Only the first
    matching header is captured; trailing blank lines are dropped.
    """
    wanted = section_name.strip().lower()
    capturing = False
    captured: List[str] = []

    for line in content.split("\n"):
        header = SECTION_HEADER_PATTERN.match(line)
        if header:
            if capturing:
                break
            if header.group(1).strip().lower() == wanted:
                capturing = True
                captured.append(line)
        elif capturing:
            captured.append(line)

    if not captured:
        return None

    while captured and not captured[-1].strip():
        captured.pop()

    return "\n".join(captured)


def list_sections(content: str) -> List[str]:
    """List level-2 header names in document order, duplicates included."""
    sections: List[str] = []
    for line in content.split("\n"):
        header = SECTION_HEADER_PATTERN.match(line)
        if header:
            sections.append(header.group(1).strip())
    return sections


def is_excluded_section_header(line: str) -> bool:
    """True for ``## Constraints`` and ``## Acceptance Criteria`` headers."""
    return bool(_EXCLUDED_HEADER_PATTERN.match(line))


def is_section_header(line: str) -> bool:
    return bool(_ANY_HEADER_PATTERN.match(line))


_EXCLUDED_HEADER_PATTERN = re.compile(
    r"^##\s+(?:Constraints|Acceptance\s+Criteria)\s*$", re.IGNORECASE
)
_ANY_HEADER_PATTERN = re.compile(r"^##\s+")
