"""Document identity: path normalization and removal target resolution.

Stored documents are identified by their url. Local documents use
``file://<path>`` urls; several chunks (points) share one url. Removal targets
given by a user are matched against stored paths with escalating
specificity, and any match that could bind to more than one stored identity
is rejected instead of guessed.
"""

import posixpath
import re
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import AmbiguousMatchError, NoMatchError
from .models import StoredPoint

FILE_SCHEME = "file://"
SAMPLE_SIZE = 10

_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:[\\/]")


def strip_file_scheme(url: str) -> str:
    return url[len(FILE_SCHEME):] if url.startswith(FILE_SCHEME) else url


def normalize_path(path: str) -> str:
    """Normalize a stored url or user path for comparison.

    Strips ``file://``, turns backslashes into slashes, collapses ``.``/``..``
    and duplicate separators, and lowercases.
    """
    path = strip_file_scheme(path).replace("\\", "/")
    if path:
        path = posixpath.normpath(path)
    return path.lower()


def is_absolute(path: str) -> bool:
    return path.startswith(("/", "\\")) or bool(_WINDOWS_ABSOLUTE.match(path))


def path_segments(path: str) -> list[str]:
    """Split a local path into display segments, keeping case."""
    path = strip_file_scheme(path).replace("\\", "/")
    return [segment for segment in posixpath.normpath(path).split("/") if segment and segment != "."]


@dataclass
class RemovalTarget:
    raw: str
    normalized: str
    absolute: bool

    @classmethod
    def parse(cls, raw: str) -> "RemovalTarget":
        return cls(raw=raw, normalized=normalize_path(raw), absolute=is_absolute(raw))

    def describe_rule(self) -> str:
        if self.absolute:
            return f"  • {self.normalized} (exact path)"
        return f"  • /{self.normalized}/ (as directory) or /{self.normalized} (as file)"


@dataclass
class TargetMatch:
    """How one stored path matched one target."""
    file_match: bool = False
    directory_match: bool = False

    def __bool__(self) -> bool:
        return self.file_match or self.directory_match


def match_target(stored: str, target: RemovalTarget) -> TargetMatch:
    """Match a normalized stored path against a removal target.

    Absolute targets need an exact match. Relative targets match a stored
    path that ends with ``/target``, contains ``/target/`` as a directory, or
    equals the target verbatim.
    """
    if target.absolute:
        return TargetMatch(file_match=stored == target.normalized)

    needle = target.normalized
    return TargetMatch(
        file_match=stored == needle or stored.endswith("/" + needle),
        directory_match=f"/{needle}/" in stored,
    )


@dataclass
class StoredFile:
    """All points stored for one document path."""
    path: str
    normalized: str
    point_ids: list[str] = field(default_factory=list)
    matched_by: Optional[str] = None


@dataclass
class RemovalPlan:
    """Points authorized for deletion after every ambiguity check passed."""
    files: list[StoredFile]

    @property
    def point_ids(self) -> list[str]:
        return [pid for f in self.files for pid in f.point_ids]

    @property
    def chunk_count(self) -> int:
        return len(self.point_ids)


def _sample(points: list[StoredPoint]) -> list[str]:
    lines = []
    for point in points[:SAMPLE_SIZE]:
        url = point.payload.get("url", "")
        lines.append(f"  • {url} (normalized: {normalize_path(url)})")
    return lines


def resolve_removal(points: list[StoredPoint], paths: list[str]) -> RemovalPlan:
    """Resolve user-supplied paths to stored documents.

    Args:
        points: Stored points to match against (local documents)
        paths: Absolute or relative paths, files or directories

    Returns:
        RemovalPlan with every matched file and its point ids

    Raises:
        NoMatchError: nothing matched any of the paths
        AmbiguousMatchError: a directory or file name resolves to more than
            one stored location
    """
    targets = [RemovalTarget.parse(p) for p in paths]

    # Collecting candidates
    files: dict[str, StoredFile] = {}
    dir_parents: dict[str, set[str]] = {}
    file_hits: dict[str, set[str]] = {}

    for point in points:
        url = point.payload.get("url")
        if not isinstance(url, str) or not url.startswith(FILE_SCHEME):
            continue
        stored = normalize_path(url)

        matched_by = None
        for target in targets:
            match = match_target(stored, target)
            if not match:
                continue
            matched_by = matched_by or target.raw
            if match.directory_match:
                parent = stored[:stored.index(f"/{target.normalized}/")]
                dir_parents.setdefault(target.normalized, set()).add(parent)
            if match.file_match and not target.absolute:
                file_hits.setdefault(target.normalized, set()).add(stored)

        if matched_by is None:
            continue
        entry = files.setdefault(stored, StoredFile(path=strip_file_scheme(url), normalized=stored))
        entry.point_ids.append(point.id)
        entry.matched_by = entry.matched_by or matched_by

    if not files:
        debug_info = [
            "",
            "Debug information:",
            f"- Input paths: {', '.join(paths)}",
            "- Looking for matches where stored path contains:",
            *[t.describe_rule() for t in targets],
            "",
            "Available documents in database:",
            *_sample(points),
        ]
        raise NoMatchError(
            f"No documents found matching the specified path(s): {', '.join(paths)}"
            + "\n".join(debug_info)
        )

    # Checking ambiguity. A directory name also matches itself as a stored
    # folder marker, so those locations count too.
    for name, parents in dir_parents.items():
        parents.update(posixpath.dirname(hit) for hit in file_hits.get(name, ()))

    ambiguous_dirs = {
        name: sorted(f"{parent}/{name}" for parent in parents)
        for name, parents in dir_parents.items()
        if len(parents) > 1
    }
    if ambiguous_dirs:
        details = "".join(
            f'\n- "{name}" found in multiple locations:\n  '
            + "\n  ".join(f"• {loc}" for loc in locations)
            for name, locations in ambiguous_dirs.items()
        )
        raise AmbiguousMatchError(
            "Multiple directories found with the same name. "
            f"Please use a more specific path to indicate which one to remove:{details}",
            ambiguous_dirs,
        )

    by_name: dict[str, set[str]] = {}
    for stored in files:
        by_name.setdefault(posixpath.basename(stored), set()).add(stored)
    duplicates = {
        name: sorted(paths)
        for name, paths in by_name.items()
        if len(paths) > 1
    }
    if duplicates:
        details = "".join(
            f'\n- "{name}" found in multiple locations: {", ".join(locations)}'
            for name, locations in duplicates.items()
        )
        raise AmbiguousMatchError(
            "Multiple files found with the same name. "
            f"Please use full paths to specify which file to remove:{details}",
            duplicates,
        )

    return RemovalPlan(files=list(files.values()))
