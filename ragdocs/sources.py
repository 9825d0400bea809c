"""Listing of stored documentation sources."""

from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import urlparse

from .identity import normalize_path, path_segments
from .models import DocumentRecord


@dataclass
class TreeNode:
    name: str
    is_folder: bool
    children: dict[str, "TreeNode"] = field(default_factory=dict)

    def has_files(self) -> bool:
        return any(not child.is_folder for child in self.children.values())


def build_tree(records: Iterable[DocumentRecord]) -> TreeNode:
    """Build a folder tree from local document records.

    Intermediate segments are always folders; the last segment takes its
    folder flag from the record.
    """
    root = TreeNode(name="", is_folder=True)
    for record in records:
        segments = record.path_segments or path_segments(record.url)
        current = root
        for i, segment in enumerate(segments):
            is_last = i == len(segments) - 1
            node = current.children.get(segment)
            if node is None:
                node = TreeNode(name=segment, is_folder=record.is_folder if is_last else True)
                current.children[segment] = node
            elif not is_last or record.is_folder:
                node.is_folder = True
            current = node
    return root


def collapse_chain(node: TreeNode) -> TreeNode:
    """Follow single-folder links down to the first folder that holds files or branches."""
    while not node.has_files() and len(node.children) == 1:
        only = next(iter(node.children.values()))
        if not only.is_folder:
            break
        node = only
    return node


def _sorted_children(node: TreeNode) -> list[TreeNode]:
    return sorted(
        node.children.values(),
        key=lambda child: (not child.is_folder, child.name.lower(), child.name),
    )


def render_tree(node: TreeNode, prefix: str = "", lines: Optional[list[str]] = None) -> list[str]:
    """Render a tree depth first, folders before files, alphabetically.

    A chain of single-child folders is collapsed to an ellipsis that jumps to
    the first folder holding files or branching. Folders with several
    children render normally so no stored document is hidden.
    """
    if lines is None:
        lines = []

    children = _sorted_children(node)
    for index, child in enumerate(children):
        is_last = index == len(children) - 1
        connector = "└──" if is_last else "├──"
        child_prefix = prefix + ("    " if is_last else "│   ")

        if child.is_folder and not child.has_files():
            target = collapse_chain(child)
            if target is not child:
                lines.append(f"{prefix}...📁{target.name}")
                render_tree(target, child_prefix, lines)
                continue

        icon = "📁" if child.is_folder else "📄"
        lines.append(f"{prefix}{connector} {icon} {child.name}")
        if child.children:
            render_tree(child, child_prefix, lines)

    return lines


def _base_title(title: str) -> str:
    return title.split(" - ")[0].split(" | ")[0].strip()


def format_sources(records: Iterable[DocumentRecord], expanded: bool = False) -> str:
    """Render web sources grouped by domain and local sources as a tree.

    Args:
        records: One record per stored chunk; duplicates are collapsed
        expanded: List every page under its domain

    Returns:
        Human-readable listing
    """
    url_sources: dict[str, DocumentRecord] = {}
    local_sources: dict[str, DocumentRecord] = {}

    for record in records:
        if record.is_local:
            local_sources.setdefault(normalize_path(record.url), record)
        else:
            url_sources.setdefault(record.url, record)

    lines: list[str] = []

    if url_sources:
        lines.append("🌐 Web Documentation Sources:")
        lines.append("")

        domain_groups: dict[str, list[DocumentRecord]] = {}
        for source in sorted(url_sources.values(), key=lambda s: s.title.lower()):
            parsed = urlparse(source.url)
            if not parsed.scheme or not parsed.hostname:
                lines.append(f"  • 📚 {source.title}")
                lines.append(f"    {source.url}")
                continue
            domain = f"{parsed.scheme}://{parsed.hostname}/"
            domain_groups.setdefault(domain, []).append(source)

        for domain, sources in domain_groups.items():
            base = next((s for s in sources if s.url == domain), sources[0])
            lines.append(f"  • 📚 {_base_title(base.title)}")
            lines.append(f"    {domain}")
            if expanded and len(sources) > 1:
                for source in sources:
                    if source.url != domain:
                        lines.append(f"      - {source.url}")

        lines.append("")

    if local_sources:
        lines.append("Local Documentation Sources:")
        lines.append("")
        ordered = sorted(
            local_sources.values(),
            key=lambda s: "/".join(s.path_segments or path_segments(s.url)),
        )
        render_tree(build_tree(ordered), "", lines)

    if not lines:
        lines.append("No documentation sources found.")

    return "\n".join(lines)
