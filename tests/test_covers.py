"""Unit tests for blog/covers.py."""

import pytest

from blog.covers import CoverStorage
from core.errors import CoverTooLarge


@pytest.fixture
def covers(tmp_path) -> CoverStorage:
    return CoverStorage(tmp_path / "uploads", max_bytes=16)


class TestCoverStorage:
    def test_save_writes_file_under_random_name(self, covers) -> None:
        path = covers.save("holiday.PNG", b"png-bytes")
        assert path.startswith("uploads/")
        assert path.endswith(".png")
        assert "holiday" not in path
        assert covers.resolve(path).read_bytes() == b"png-bytes"

    def test_two_saves_never_collide(self, covers) -> None:
        assert covers.save("a.png", b"1") != covers.save("a.png", b"2")

    @pytest.mark.parametrize("filename", [None, "", "noext", "evil.p/ng", "x.toolongextension"])
    def test_unusable_extension_is_dropped(self, covers, filename) -> None:
        path = covers.save(filename, b"x")
        assert "." not in path.rsplit("/", 1)[1]

    def test_oversized_upload_is_rejected(self, covers) -> None:
        with pytest.raises(CoverTooLarge):
            covers.save("big.png", b"x" * 17)
        assert list(covers.directory.iterdir()) == []

    def test_remove_deletes_file(self, covers) -> None:
        path = covers.save("a.png", b"x")
        covers.remove(path)
        assert covers.resolve(path) is None

    def test_remove_missing_or_empty_is_a_no_op(self, covers) -> None:
        covers.remove(None)
        covers.remove("uploads/does-not-exist.png")

    def test_resolve_cannot_escape_directory(self, covers, tmp_path) -> None:
        (tmp_path / "secret.txt").write_text("x")
        assert covers.resolve("../secret.txt") is None
        assert covers.resolve("..") is None
