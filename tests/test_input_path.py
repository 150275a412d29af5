from pathlib import Path

import pytest

from agora.errors import InternalError, InvalidFilePathError
from agora.input_path import InputPath, lexiclean


def test_new_removes_trailing_slashes(tmp_path):
    input_path = InputPath.new(tmp_path, "foo/")
    assert input_path == InputPath(full_path=tmp_path / "foo", display_path=Path("foo"))


def test_join_relative_removes_trailing_slashes(tmp_path):
    base = InputPath.new(tmp_path, "foo")
    input_path = base.join_relative("bar/")
    assert input_path == InputPath(
        full_path=tmp_path / "foo" / "bar", display_path=Path("foo") / "bar"
    )


def test_join_file_path_removes_trailing_slashes(tmp_path):
    base = InputPath.new(tmp_path, "foo")
    input_path = base.join_file_path("bar/")
    assert input_path == InputPath(
        full_path=tmp_path / "foo" / "bar", display_path=Path("foo") / "bar"
    )


def test_iter_prefixes_iterates_from_base_dir_to_file(tmp_path):
    base = InputPath.new(tmp_path, "www")
    dirs = list(base.iter_prefixes(["foo/", "bar/", "baz"]))
    assert dirs == [base.join_file_path(x) for x in ["foo", "foo/bar", "foo/bar/baz"]]


def test_iter_prefixes_for_empty_inputs(tmp_path):
    base = InputPath.new(tmp_path, "www")
    assert list(base.iter_prefixes([])) == []


@pytest.mark.parametrize("uri_path", ["foo/../bar.txt", "foo//bar.txt", "/foo.txt", "./foo"])
def test_join_file_path_rejects_non_normal_components(tmp_path, uri_path):
    base = InputPath.new(tmp_path, "www")
    with pytest.raises(InvalidFilePathError) as info:
        base.join_file_path(uri_path)
    assert str(info.value) == f"Invalid URI file path: {uri_path}"


def test_iter_prefixes_reports_invalid_segment_lazily(tmp_path):
    base = InputPath.new(tmp_path, "www")
    prefixes = base.iter_prefixes(["foo/", "../", "bar"])
    assert next(prefixes) == base.join_file_path("foo")
    with pytest.raises(InvalidFilePathError):
        next(prefixes)


def test_join_relative_rejects_absolute_paths(tmp_path):
    base = InputPath.new(tmp_path, "www")
    with pytest.raises(InternalError):
        base.join_relative(tmp_path)


def test_lexiclean_resolves_parent_components():
    assert lexiclean("a/b/../c/./d/") == Path("a/c/d")
    assert lexiclean("/..") == Path("/")
    assert lexiclean("../a") == Path("../a")
    assert lexiclean("a/..") == Path(".")


def test_new_with_parent_directory_is_cleaned(tmp_path):
    working = tmp_path / "working"
    input_path = InputPath.new(working, "../www")
    assert input_path.full_path == tmp_path / "www"
    assert input_path.display_path == Path("../www")


def test_fspath_is_full_path(tmp_path):
    input_path = InputPath.new(tmp_path, "foo.txt")
    (tmp_path / "foo.txt").write_text("hello")
    with open(input_path) as file:
        assert file.read() == "hello"


def test_mime_type_from_display_path(tmp_path):
    assert InputPath.new(tmp_path, "foo.mp4").mime_type() == "video/mp4"
    assert InputPath.new(tmp_path, "foo").mime_type() is None