"""
Tests for index/data records and binary classification.
"""
import pytest

from geheim.errors import DecryptionFailed, RecordAlreadyExists, RecordNotFound
from geheim.records import DataRecord, IndexRecord, is_binary
from geheim.writer import SafeWriter


class TestBinaryClassification:

    @pytest.mark.parametrize("description, binary", [
        ("notes.txt", False),
        ("photo.png", True),
        ("README", False),
        ("archive.tar.gz", True),
        ("docs/README", False),
        ("docs/README.old", False),
        ("table.csv", False),
        ("nginx.conf", False),
        ("notes.md", False),
        ("bank/login", False),
        ("dir.txt/photo.png", True),
    ])
    def test_classification(self, description, binary):
        assert is_binary(description) is binary

    def test_custom_extension_table(self):
        assert is_binary("key.pem") is True
        assert is_binary("key.pem", [".pem"]) is False

    def test_index_record_uses_its_table(self, tmp_path):
        record = IndexRecord.create(tmp_path, "abc", "key.pem", [".pem"])
        assert record.binary is False


class TestIndexRecord:

    def test_paths_share_locator_stem(self, tmp_path):
        record = IndexRecord.create(tmp_path, "aa/bb", "x/y.txt")
        assert record.path == tmp_path / "aa/bb.index"
        assert record.data_path == tmp_path / "aa/bb.data"

    def test_persist_then_load(self, tmp_path, cipher, vcs):
        writer = SafeWriter(vcs)
        IndexRecord.create(tmp_path, "aa/bb", "bank/login.txt").persist(cipher, writer)

        loaded = IndexRecord.load(tmp_path, "aa/bb", cipher)
        assert loaded.description == "bank/login.txt"
        assert vcs.staged == [tmp_path / "aa/bb.index"]

    def test_file_is_raw_ciphertext(self, tmp_path, cipher, vcs):
        record = IndexRecord.create(tmp_path, "aa", "hello.txt")
        record.persist(cipher, SafeWriter(vcs))
        assert record.path.read_bytes() == cipher.encrypt(b"hello.txt")

    def test_persist_refuses_overwrite(self, tmp_path, cipher, vcs):
        writer = SafeWriter(vcs)
        IndexRecord.create(tmp_path, "aa", "one").persist(cipher, writer)
        with pytest.raises(RecordAlreadyExists):
            IndexRecord.create(tmp_path, "aa", "two").persist(cipher, writer)
        assert IndexRecord.load(tmp_path, "aa", cipher).description == "one"

    def test_load_missing(self, tmp_path, cipher):
        with pytest.raises(RecordNotFound):
            IndexRecord.load(tmp_path, "missing", cipher)

    def test_load_corrupted(self, tmp_path, cipher):
        (tmp_path / "bad.index").write_bytes(b"\x00" * 7)
        with pytest.raises(DecryptionFailed):
            IndexRecord.load(tmp_path, "bad", cipher)

    def test_ordering_by_description(self, tmp_path):
        records = [IndexRecord.create(tmp_path, str(i), d) for i, d in enumerate(["b/x", "a/y", "a/z"])]
        assert [r.description for r in sorted(records)] == ["a/y", "a/z", "b/x"]

    def test_str_marks_binary_and_shows_hash_tail(self, tmp_path):
        locator = "0123456789abcdef"
        text = IndexRecord.create(tmp_path, locator, "notes.txt")
        photo = IndexRecord.create(tmp_path, locator, "photo.png")
        assert str(text) == "notes.txt; ...56789abcde\n"
        assert str(photo) == "photo.png; (BINARY) ...56789abcde\n"


class TestDataRecord:

    def test_get_data_decrypts_pair(self, tmp_path, cipher, vcs):
        writer = SafeWriter(vcs)
        index = IndexRecord.create(tmp_path, "aa", "notes.txt")
        index.new_data(b"hello").persist(cipher, writer)
        index.persist(cipher, writer)

        data = index.get_data(cipher)
        assert data.payload == b"hello"
        assert data.exported_path is None

    def test_missing_data_file(self, tmp_path, cipher):
        with pytest.raises(RecordNotFound):
            DataRecord.load(tmp_path, "nothing", cipher)

    def test_str_indents_lines(self, tmp_path):
        data = DataRecord.create(tmp_path, "aa", b"one\ntwo")
        assert str(data) == "\tone\n\ttwo\n"
