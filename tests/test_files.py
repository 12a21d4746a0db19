"""Tests for perch.services.files.FileManager."""

import pytest

from perch.config import FilesConfig
from perch.errors import ApiError
from perch.services.files import FileManager


@pytest.fixture
def files(tmp_path) -> FileManager:
    return FileManager(FilesConfig(root=str(tmp_path)))


class TestReadWrite:
    def test_write_and_read(self, files, tmp_path) -> None:
        assert files.write("note.txt", "hello")
        assert (tmp_path / "note.txt").read_text() == "hello"
        assert files.read("note.txt") == "hello"

    def test_binary(self, files) -> None:
        files.write("blob.bin", b"\x00\x01")
        assert files.read("blob.bin", binary=True) == b"\x00\x01"

    def test_read_missing(self, files) -> None:
        assert files.read("nope.txt") is None

    def test_append(self, files) -> None:
        files.write("log.txt", "a")
        files.append("log.txt", "b")
        files.append("log.txt", b"c")
        assert files.read("log.txt") == "abc"

    def test_write_into_missing_directory(self, files) -> None:
        assert not files.write("no/such/dir.txt", "x")
        assert not files.append("no/such/dir.txt", "x")

    def test_absolute_path_ignores_root(self, files, tmp_path) -> None:
        target = tmp_path / "abs.txt"
        files.write(target, "x")
        assert files.path(target) == target


class TestQueries:
    def test_exists_and_is_dir(self, files) -> None:
        files.make_dir("sub")
        files.write("sub/a.txt", "1")
        assert files.exists("sub/a.txt")
        assert files.is_dir("sub")
        assert not files.is_dir("sub/a.txt")

    def test_list_sorted(self, files) -> None:
        files.make_dir("d")
        files.write("d/b.txt", "")
        files.write("d/a.txt", "")
        assert files.list("d") == ["a.txt", "b.txt"]

    def test_list_missing(self, files) -> None:
        assert files.list("missing") is None

    def test_size_and_modified(self, files) -> None:
        files.write("s.txt", "12345")
        assert files.size("s.txt") == 5
        assert files.modified("s.txt") is not None
        assert files.size("none.txt") is None
        assert files.modified("none.txt") is None


class TestMutations:
    def test_delete(self, files) -> None:
        files.write("x.txt", "")
        assert files.delete("x.txt")
        assert not files.delete("x.txt")

    def test_delete_dir(self, files) -> None:
        files.make_dir("tree/leaf")
        files.write("tree/leaf/f.txt", "")
        assert files.delete_dir("tree")
        assert not files.exists("tree")
        assert not files.delete_dir("tree")

    def test_copy(self, files) -> None:
        files.write("src.txt", "data")
        assert files.copy("src.txt", "dst.txt")
        assert files.read("dst.txt") == "data"
        assert files.exists("src.txt")

    def test_copy_missing(self, files) -> None:
        assert not files.copy("ghost.txt", "dst.txt")

    def test_move(self, files) -> None:
        files.write("a.txt", "data")
        assert files.move("a.txt", "b.txt")
        assert not files.exists("a.txt")
        assert files.read("b.txt") == "data"

    def test_move_missing(self, files) -> None:
        assert not files.move("ghost.txt", "b.txt")

    def test_copy_into_missing_directory(self, files) -> None:
        files.write("a.txt", "data")
        assert not files.copy("a.txt", "missing/b.txt")
        assert not files.move("a.txt", "missing/b.txt")
        assert files.exists("a.txt")


class TestServe:
    def test_serve_inline(self, files) -> None:
        files.write("page.html", "<p>hi</p>")
        response = files.serve("page.html")
        assert response.status == 200
        assert response.content_type == "text/html"
        assert response.body == b"<p>hi</p>"
        assert response.header("Content-Length") == "9"
        assert response.header("Content-Disposition") is None

    def test_serve_download(self, files) -> None:
        files.write("report.pdf", b"%PDF")
        response = files.serve("report.pdf", as_download=True)
        assert response.header("Content-Disposition") == 'attachment; filename="report.pdf"'

    def test_unknown_type(self, files) -> None:
        files.write("data.unknownext", b"x")
        assert files.serve("data.unknownext").content_type == "application/octet-stream"

    def test_missing(self, files) -> None:
        response = files.serve("missing.txt")
        assert response.status == 404
        assert response.text == "File not found."


class TestUploads:
    def test_too_large(self, tmp_path) -> None:
        files = FileManager(FilesConfig(root=str(tmp_path), max_size=10))
        with pytest.raises(ApiError) as info:
            files.validate_upload("a.png", 11)
        assert info.value.code == 413

    def test_disallowed_type(self, files) -> None:
        with pytest.raises(ApiError) as info:
            files.validate_upload("script.exe", 10)
        assert info.value.code == 415

    def test_extension_case_insensitive(self, files) -> None:
        files.validate_upload("PHOTO.PNG", 10)

    def test_store_sanitises_name(self, files, tmp_path) -> None:
        stored = files.store_upload("../my photo!.png", b"img")
        assert stored == tmp_path / "uploads" / "my_photo_.png"
        assert stored.read_bytes() == b"img"
