"""Unit tests for CSV roll parsing and export rendering."""

import pytest

from app.utils.csv_io import normalize_header, parse_csv_rows, rows_to_csv


class TestParseCsvRows:
    @pytest.mark.parametrize(
        "header,field",
        [
            ("Voter ID", "voter_id"),
            (" mobile no. ", "phone"),
            ("Date of Birth", "dob"),
            ("EMAIL", "email"),
            ("Ward", "ward"),
        ],
    )
    def test_header_aliases(self, header, field):
        assert normalize_header(header) == field

    def test_byte_order_mark_and_blank_lines(self):
        text = "\ufeffvoter_id,name,region\r\nV1, Asha ,Raigad\r\n,,\r\n"

        assert parse_csv_rows(text) == [{"voter_id": "V1", "name": "Asha", "region": "Raigad"}]

    def test_empty_text(self):
        assert parse_csv_rows("") == []


class TestRowsToCsv:
    def test_nested_values_are_flattened(self):
        rows = [{"id": "c1", "education": {"degree": "B.Com"}, "tags": ["a", "b"]}]

        text = rows_to_csv(rows, leading=("id",))

        header, line = text.strip().splitlines()
        assert header == "id,education.degree,tags"
        assert line == 'c1,B.Com,"a, b"'

    def test_no_rows(self):
        assert rows_to_csv([]) == ""
