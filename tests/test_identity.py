"""Tests for document identity and removal target resolution."""

import pytest

from ragdocs.exceptions import AmbiguousMatchError, NoMatchError
from ragdocs.identity import (
    RemovalTarget,
    is_absolute,
    match_target,
    normalize_path,
    path_segments,
    resolve_removal,
)
from ragdocs.models import StoredPoint


def make_points(*urls, chunks=1):
    points = []
    for url in urls:
        for i in range(chunks):
            points.append(StoredPoint(id=f"{url}#{i}", payload={"url": url, "title": url}))
    return points


def test_normalize_path():
    assert normalize_path("file:///Home/User/Docs/Guide.md") == "/home/user/docs/guide.md"
    assert normalize_path("C:\\Docs\\A.md") == "c:/docs/a.md"
    assert normalize_path("/a/./b/../c//d.md") == "/a/c/d.md"


def test_is_absolute():
    assert is_absolute("/docs/guide.md")
    assert is_absolute("C:\\docs\\guide.md")
    assert is_absolute("d:/docs")
    assert not is_absolute("docs/guide.md")
    assert not is_absolute("guide.md")


def test_path_segments_keep_case():
    assert path_segments("file:///Home/Docs/Guide.md") == ["Home", "Docs", "Guide.md"]


def test_match_relative_file_and_directory():
    target = RemovalTarget.parse("Docs")

    as_dir = match_target("/home/u/docs/guide.md", target)
    assert as_dir.directory_match and not as_dir.file_match

    as_file = match_target("/home/u/docs", target)
    assert as_file.file_match and not as_file.directory_match

    # Suffix of a longer name does not match
    assert not match_target("/home/u/mydocs/guide.md", target)


def test_match_absolute_is_exact():
    target = RemovalTarget.parse("/home/u/docs/guide.md")

    assert match_target("/home/u/docs/guide.md", target)
    assert not match_target("/other/home/u/docs/guide.md", target)


def test_resolve_relative_file():
    points = make_points("file:///home/u/docs/guide.md", chunks=2) + make_points(
        "file:///home/u/other/guide.md", "https://example.com/docs/guide.md"
    )

    plan = resolve_removal(points, ["docs/guide.md"])

    assert [f.path for f in plan.files] == ["/home/u/docs/guide.md"]
    assert plan.chunk_count == 2
    assert sorted(plan.point_ids) == ["file:///home/u/docs/guide.md#0", "file:///home/u/docs/guide.md#1"]


def test_resolve_is_case_insensitive():
    points = make_points("file:///home/u/Docs/Guide.md")

    plan = resolve_removal(points, ["docs/GUIDE.md"])

    assert plan.files[0].path == "/home/u/Docs/Guide.md"


def test_resolve_directory():
    points = make_points(
        "file:///home/u/docs/guide.md",
        "file:///home/u/docs/api/index.md",
        "file:///home/u/docs",
        "file:///home/u/other/notes.md",
    )

    plan = resolve_removal(points, ["docs"])

    assert sorted(f.path for f in plan.files) == [
        "/home/u/docs",
        "/home/u/docs/api/index.md",
        "/home/u/docs/guide.md",
    ]


def test_resolve_absolute_path():
    points = make_points("file:///home/u/docs/guide.md", "file:///home/u/other/guide.md")

    plan = resolve_removal(points, ["/home/u/other/guide.md"])

    assert [f.path for f in plan.files] == ["/home/u/other/guide.md"]


def test_duplicate_file_names_are_rejected():
    points = make_points("file:///home/u/docs/guide.md", "file:///home/u/other/guide.md")

    with pytest.raises(AmbiguousMatchError) as exc_info:
        resolve_removal(points, ["guide.md"])

    assert "Multiple files found with the same name" in str(exc_info.value)
    assert exc_info.value.locations == {
        "guide.md": ["/home/u/docs/guide.md", "/home/u/other/guide.md"],
    }


def test_same_directory_name_in_two_places_is_rejected():
    points = make_points("file:///p/a/x/one.md", "file:///p/b/x/two.md")

    with pytest.raises(AmbiguousMatchError) as exc_info:
        resolve_removal(points, ["x"])

    assert "Multiple directories found with the same name" in str(exc_info.value)
    assert exc_info.value.locations == {"x": ["/p/a/x", "/p/b/x"]}


def test_folder_marker_elsewhere_makes_directory_ambiguous():
    points = make_points("file:///p/a/x/one.md", "file:///p/b/x")

    with pytest.raises(AmbiguousMatchError):
        resolve_removal(points, ["x"])


def test_ambiguity_rejects_the_whole_request():
    points = make_points(
        "file:///p/unique.md",
        "file:///p/a/x/one.md",
        "file:///p/b/x/two.md",
    )

    with pytest.raises(AmbiguousMatchError):
        resolve_removal(points, ["unique.md", "x"])


def test_no_match_reports_debug_information():
    points = make_points(*[f"file:///p/doc{i}.md" for i in range(12)])

    with pytest.raises(NoMatchError) as exc_info:
        resolve_removal(points, ["missing.md"])

    message = str(exc_info.value)
    assert message.startswith("No documents found matching the specified path(s): missing.md")
    assert "Debug information:" in message
    assert "/missing.md/ (as directory) or /missing.md (as file)" in message
    # Sample is capped
    assert message.count("(normalized:") == 10


def test_web_documents_are_never_matched():
    points = make_points("https://example.com/docs/guide.md")

    with pytest.raises(NoMatchError):
        resolve_removal(points, ["guide.md"])


def test_unique_file_name_resolves():
    points = make_points("file:///home/u/docs/guide.md", "file:///home/u/docs/other.md")

    plan = resolve_removal(points, ["guide.md"])

    assert [f.path for f in plan.files] == ["/home/u/docs/guide.md"]


def test_same_file_name_inside_removed_directory_is_rejected():
    points = make_points("file:///p/docs/a/readme.md", "file:///p/docs/b/readme.md")

    with pytest.raises(AmbiguousMatchError) as exc_info:
        resolve_removal(points, ["docs"])

    assert "Multiple files found with the same name" in str(exc_info.value)
    assert exc_info.value.locations == {
        "readme.md": ["/p/docs/a/readme.md", "/p/docs/b/readme.md"],
    }


def test_absolute_targets_sharing_a_file_name_are_rejected():
    points = make_points("file:///p/a/guide.md", "file:///p/b/guide.md")

    with pytest.raises(AmbiguousMatchError) as exc_info:
        resolve_removal(points, ["/p/a/guide.md", "/p/b/guide.md"])

    assert exc_info.value.locations == {"guide.md": ["/p/a/guide.md", "/p/b/guide.md"]}
