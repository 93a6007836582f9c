"""Tests for reading, writing and merging the extensions index."""

import json

import pytest

from editor_sync.exceptions import (
    IndexCorruptError,
    IndexNotFoundError,
    IndexWriteError,
    InvalidRelativeLocationError,
)
from editor_sync.index import (
    ExtensionIdentifier,
    ExtensionIndexEntry,
    find_entry,
    find_index_file,
    location_path,
    merge_entries,
    read_index,
    validate_relative_location,
    write_index,
)


def entry(ext_id, version="1.0"):
    return ExtensionIndexEntry(
        identifier=ExtensionIdentifier(id=ext_id),
        version=version,
        relative_location=f"{ext_id}-{version}",
    )


class TestReadIndex:
    def test_missing_index(self, tmp_path):
        with pytest.raises(IndexNotFoundError):
            read_index(tmp_path)

    def test_reads_in_file_order(self, tmp_path, make_extension, write_index_file):
        records = [make_extension(tmp_path, "z.z", "1"), make_extension(tmp_path, "a.a", "2")]
        write_index_file(tmp_path, records)

        entries = read_index(tmp_path)
        assert [e.id for e in entries] == ["z.z", "a.a"]
        assert entries[0].identifier.uuid == "uuid-z.z"
        assert entries[1].relative_location == "a.a-2"
        assert entries[1].metadata == {"installedTimestamp": 1700000000000, "source": "gallery"}
        assert entries[1].location.scheme == "file"

    def test_singular_fallback(self, tmp_path, write_index_file):
        write_index_file(tmp_path, [{"identifier": {"id": "x.y"}}], name="extension.json")
        assert find_index_file(tmp_path) == tmp_path / "extension.json"
        assert [e.id for e in read_index(tmp_path)] == ["x.y"]

    def test_primary_wins_over_fallback(self, tmp_path, write_index_file):
        write_index_file(tmp_path, [{"identifier": {"id": "old.one"}}], name="extension.json")
        write_index_file(tmp_path, [{"identifier": {"id": "new.one"}}])
        assert [e.id for e in read_index(tmp_path)] == ["new.one"]

    def test_invalid_json(self, tmp_path):
        (tmp_path / "extensions.json").write_text("[{")
        with pytest.raises(IndexCorruptError):
            read_index(tmp_path)

    def test_not_an_array(self, tmp_path):
        (tmp_path / "extensions.json").write_text('{"identifier": {}}')
        with pytest.raises(IndexCorruptError, match="not a JSON array"):
            read_index(tmp_path)

    def test_record_without_id(self, tmp_path, write_index_file):
        write_index_file(tmp_path, [{"version": "1.0"}])
        with pytest.raises(IndexCorruptError, match="identifier.id"):
            read_index(tmp_path)

    def test_dangling_entry_is_valid(self, tmp_path, write_index_file):
        write_index_file(tmp_path, [{"identifier": {"id": "gone.ext"}, "relativeLocation": "missing"}])
        assert read_index(tmp_path)[0].relative_location == "missing"


class TestWriteIndex:
    def test_compact_output(self, tmp_path):
        write_index(tmp_path, [entry("a.b")])
        text = (tmp_path / "extensions.json").read_text()
        assert "\n" not in text
        assert ", " not in text
        assert json.loads(text)[0]["identifier"] == {"id": "a.b"}

    def test_round_trip_preserves_records(self, tmp_path, make_extension, write_index_file):
        records = [make_extension(tmp_path, "a.b", "1.0"), make_extension(tmp_path, "c.d", "2.0")]
        records[1]["extraField"] = {"kept": True}
        records[1]["location"]["fsPath"] = "/whatever"
        write_index_file(tmp_path, records)

        first = read_index(tmp_path)
        write_index(tmp_path, first)
        second = read_index(tmp_path)

        assert second == first
        assert json.loads((tmp_path / "extensions.json").read_text()) == records

    def test_round_trip_keeps_null_and_odd_shapes(self, tmp_path, write_index_file):
        records = [
            {
                "identifier": {"id": "a.b", "uuid": None, "x": 1},
                "version": "1",
                "relativeLocation": "a.b-1",
                "metadata": None,
            },
            {
                "identifier": {"id": "c.d"},
                "version": "2",
                "location": "file:///c.d-2",
                "relativeLocation": "c.d-2",
                "metadata": ["not", "an", "object"],
            },
        ]
        write_index_file(tmp_path, records)

        entries = read_index(tmp_path)
        write_index(tmp_path, entries)

        assert json.loads((tmp_path / "extensions.json").read_text()) == records
        assert entries[0].identifier.uuid is None
        assert entries[1].location is None
        assert entries[1].metadata is None

    def test_write_failure_wrapped(self, tmp_path):
        missing = tmp_path / "nope"
        with pytest.raises(IndexWriteError):
            write_index(missing, [entry("a.b")])


class TestFindEntry:
    def test_case_insensitive(self):
        entries = [entry("Pub.Name")]
        assert find_entry(entries, "pub.name") is entries[0]
        assert find_entry(entries, "PUB.NAME") is entries[0]

    def test_missing(self):
        assert find_entry([entry("a.b")], "c.d") is None


class TestMergeEntries:
    def test_keeps_untouched_order_then_appends(self):
        existing = [entry("x.x"), entry("a.b"), entry("y.y")]
        added = [entry("A.B", "2.0"), entry("n.n")]

        merged = merge_entries(existing, added)

        assert [e.id for e in merged] == ["x.x", "y.y", "A.B", "n.n"]
        assert merged[2].version == "2.0"

    def test_inputs_not_modified(self):
        existing = [entry("a.b")]
        added = [entry("a.b", "2.0")]
        merge_entries(existing, added)
        assert existing[0].version == "1.0"
        assert len(existing) == 1 and len(added) == 1


class TestLocationPath:
    def test_posix_path(self):
        assert location_path("/home/u/.cursor/extensions/a.b-1.0") == "/home/u/.cursor/extensions/a.b-1.0"

    def test_windows_path(self):
        assert location_path("C:\\Users\\u\\.cursor\\extensions\\a.b-1.0") == "/C:/Users/u/.cursor/extensions/a.b-1.0"


class TestValidateRelativeLocation:
    def test_accepts_plain_folder(self):
        assert validate_relative_location("a.b-1.0") == "a.b-1.0"

    @pytest.mark.parametrize("value", ["", "   ", ".", "./", "../evil", "a/../../b", "/abs", "C:\\x", "..\\x"])
    def test_rejects_escaping_values(self, value):
        with pytest.raises(InvalidRelativeLocationError):
            validate_relative_location(value)
