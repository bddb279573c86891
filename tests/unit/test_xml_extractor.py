"""
Unit tests for XML node extraction and file listing
"""

import pytest

from core.exceptions import XMLExtractionError
from ingestion.extractors.xml_extractor import (
    XMLFileSource,
    extract_nodes,
    normalize_node_path,
)


class TestExtractNodes:

    def test_extracts_records_with_byte_offsets(self, catalog_xml):
        records = extract_nodes(catalog_xml, "/catalog/book", "/in/a.xml")

        assert len(records) == 2
        for record in records:
            assert record.filename == "/in/a.xml"
            assert catalog_xml[record.offset:].startswith(record.record.encode("utf-8"))
        assert records[0].record == '<book id="bk101"><title>XML Developer\'s Guide</title></book>'
        assert records[1].record == '<book id="bk102"><title>Midnight Rain</title></book>'
        assert records[0].offset < records[1].offset

    def test_only_matches_absolute_path(self):
        data = b"<root><book>1</book><shelf><book>2</book></shelf></root>"

        records = extract_nodes(data, "/root/book", "f.xml")

        assert [r.record for r in records] == ["<book>1</book>"]
        assert records[0].offset == data.index(b"<book>")

    def test_self_closing_element(self):
        data = b'<root><item id="1"/><item id="2"></item></root>'

        records = extract_nodes(data, "/root/item", "f.xml")

        assert [r.record for r in records] == ['<item id="1"/>', '<item id="2"></item>']
        assert [r.offset for r in records] == [6, 20]

    def test_self_closing_element_as_last_child(self):
        records = extract_nodes(b"<root><item/></root>", "/root/item", "f.xml")

        assert [r.record for r in records] == ["<item/>"]

    def test_self_closing_element_with_gt_in_attribute(self):
        data = b'<root><item expr="a>b"/><item/></root>'

        records = extract_nodes(data, "/root/item", "f.xml")

        assert [r.record for r in records] == ['<item expr="a>b"/>', "<item/>"]

    def test_element_with_gt_in_attribute(self):
        data = b'<root><item expr="a>b">text</item></root>'

        records = extract_nodes(data, "/root/item", "f.xml")

        assert [r.record for r in records] == ['<item expr="a>b">text</item>']

    def test_no_matching_nodes(self, catalog_xml):
        assert extract_nodes(catalog_xml, "/catalog/magazine", "f.xml") == []

    def test_offsets_count_bytes_not_characters(self):
        data = "<root><note>café</note><note>b</note></root>".encode("utf-8")

        records = extract_nodes(data, "/root/note", "f.xml")

        assert records[0].record == "<note>café</note>"
        assert records[1].offset == data.index(b"<note>b")

    def test_malformed_xml(self):
        with pytest.raises(XMLExtractionError) as exc_info:
            extract_nodes(b"<root><book></root>", "/root/book", "bad.xml")

        assert exc_info.value.context["filename"] == "bad.xml"
        assert exc_info.value.context["line_number"] == 1

    @pytest.mark.parametrize("value,expected", [
        ("/catalog/book", "/catalog/book"),
        ("catalog/book/", "/catalog/book"),
        (" /catalog//book ", "/catalog/book"),
    ])
    def test_normalize_node_path(self, value, expected):
        assert normalize_node_path(value) == expected


class TestXMLFileSource:

    def test_lists_directory(self, fs, input_dir):
        source = XMLFileSource(fs, str(input_dir), "/catalog/book")

        assert source.list_files() == [f"{input_dir}/{n}" for n in ("a.xml", "b.xml", "c.xml")]

    def test_lists_single_file(self, fs, input_dir):
        source = XMLFileSource(fs, str(input_dir / "b.xml"), "/catalog/book")

        assert source.list_files() == [f"{input_dir}/b.xml"]

    def test_glob_with_pattern(self, fs, input_dir):
        (input_dir / "notes.txt").write_bytes(b"not xml")
        source = XMLFileSource(fs, f"{input_dir}/*", "/catalog/book", pattern=r"^[ab]\.xml$")

        assert source.list_files() == [f"{input_dir}/a.xml", f"{input_dir}/b.xml"]

    def test_skips_hidden_files(self, fs, input_dir):
        (input_dir / ".a.xml.crc").write_bytes(b"")
        (input_dir / "_SUCCESS").write_bytes(b"")
        source = XMLFileSource(fs, str(input_dir), "/catalog/book")

        assert len(source.list_files()) == 3

    def test_exclusions(self, fs, input_dir):
        source = XMLFileSource(
            fs, str(input_dir), "/catalog/book",
            exclusions={f"{input_dir}/a.xml", f"{input_dir}/c.xml"}
        )

        assert source.list_files() == [f"{input_dir}/b.xml"]

    def test_skipped_only_holds_listed_exclusions(self, fs, input_dir):
        source = XMLFileSource(
            fs, str(input_dir), "/catalog/book",
            exclusions={f"{input_dir}/a.xml", "/gone/z.xml"}
        )

        source.list_files()

        assert source.skipped == frozenset({f"{input_dir}/a.xml"})

    def test_read_records(self, fs, input_dir):
        source = XMLFileSource(fs, str(input_dir), "/catalog/book")

        records = source.read_records(f"{input_dir}/a.xml")

        assert len(records) == 2
        assert records[0].filename == f"{input_dir}/a.xml"

    def test_read_missing_file(self, fs, input_dir):
        source = XMLFileSource(fs, str(input_dir), "/catalog/book")

        with pytest.raises(XMLExtractionError):
            source.read_records(f"{input_dir}/missing.xml")
