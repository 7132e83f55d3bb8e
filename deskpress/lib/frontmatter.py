"""YAML frontmatter parsing and serialization for markdown post files."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import yaml

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"^---\n(.*?)\n---\n(.*)$", re.DOTALL)


@dataclass
class ParsedMarkdown:
    frontmatter: dict[str, Any] = field(default_factory=dict)
    content: str = ""


def parse_markdown(markdown: str) -> ParsedMarkdown:
    """Split a markdown document into its frontmatter dict and body.

    Documents without a ``---`` delimited header, or whose header is not a
    YAML mapping, are returned whole as the body with empty frontmatter.
    """
    match = FRONTMATTER_PATTERN.match(markdown)
    if not match:
        return ParsedMarkdown(frontmatter={}, content=markdown)

    frontmatter_yaml, content = match.groups()

    try:
        frontmatter = yaml.safe_load(frontmatter_yaml)
    except yaml.YAMLError:
        logger.exception("Error parsing frontmatter")
        return ParsedMarkdown(frontmatter={}, content=markdown)

    if frontmatter is None:
        frontmatter = {}
    if not isinstance(frontmatter, dict):
        logger.error("Frontmatter is not a mapping: %r", type(frontmatter).__name__)
        return ParsedMarkdown(frontmatter={}, content=markdown)

    return ParsedMarkdown(frontmatter=frontmatter, content=content.strip())


def serialize_markdown(frontmatter: dict[str, Any], content: str) -> str:
    """Write frontmatter and body back into a single markdown document."""
    frontmatter_yaml = yaml.safe_dump(
        frontmatter,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )
    return f"---\n{frontmatter_yaml}---\n\n{content}"


def slug_from_filename(filename: str) -> str:
    return re.sub(r"\.md$", "", filename)


def filename_from_slug(slug: str) -> str:
    return f"{slug}.md"
