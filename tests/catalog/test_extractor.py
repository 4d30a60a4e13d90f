from __future__ import annotations

import textwrap

import pytest

from kedro_catalog.catalog.extractor import extract_text
from kedro_catalog.catalog.models import UNKNOWN_TYPE
from kedro_catalog.errors import CatalogSyntaxError


def _records(text: str, source: str = "conf/base/catalog.yml"):
    return {record.name: record for record in extract_text(textwrap.dedent(text).lstrip("\n"), source)}


def test_placeholder_is_interpolated_into_aliasing_entries() -> None:
    records = _records(
        """
        _csv: &csv
          type: pandas.CSVDataset
          layer: raw

        companies:
          <<: *csv
          filepath: data/01_raw/companies.csv
        """
    )
    assert list(records) == ["companies"]
    assert records["companies"].type == "pandas.CSVDataset"
    assert records["companies"].layer == "raw"


def test_explicit_attributes_override_the_placeholder() -> None:
    records = _records(
        """
        _csv: &csv
          type: pandas.CSVDataset
          layer: raw

        reviews:
          <<: *csv
          layer: intermediate
        """
    )
    assert records["reviews"].type == "pandas.CSVDataset"
    assert records["reviews"].layer == "intermediate"


def test_later_alias_wins_when_several_are_merged() -> None:
    records = _records(
        """
        _a: &a
          type: first.Dataset
          layer: one
        _b: &b
          type: second.Dataset

        both:
          <<: [*a, *b]
        """
    )
    assert records["both"].type == "second.Dataset"
    assert records["both"].layer == "one"


def test_empty_document_has_no_records() -> None:
    assert extract_text("", "catalog.yml") == []
    assert extract_text("# only a comment\n", "catalog.yml") == []


def test_non_mapping_entry_is_skipped_without_affecting_siblings() -> None:
    records = _records(
        """
        broken: just a string
        listed:
          - a
          - b
        good:
          type: pandas.CSVDataset
        """
    )
    assert list(records) == ["good"]


def test_missing_type_uses_unknown_sentinel_and_layer_is_optional() -> None:
    records = _records(
        """
        untyped:
          filepath: data/untyped.csv
        """
    )
    assert records["untyped"].type == UNKNOWN_TYPE
    assert records["untyped"].layer is None


def test_kedro_viz_metadata_layer_is_used_as_fallback() -> None:
    records = _records(
        """
        shuttles:
          type: pandas.ExcelDataset
          metadata:
            kedro-viz:
              layer: raw
        """
    )
    assert records["shuttles"].layer == "raw"


def test_anchor_on_a_real_dataset_can_be_aliased() -> None:
    records = _records(
        """
        base: &base
          type: pandas.CSVDataset
          layer: raw
        copy:
          <<: *base
          filepath: data/copy.csv
        """
    )
    assert set(records) == {"base", "copy"}
    assert records["copy"].type == "pandas.CSVDataset"
    assert records["copy"].layer == "raw"


def test_underscore_convention_resolves_nested_anchor() -> None:
    records = _records(
        """
        _pq:
          type: pandas.ParquetDataset
          layer: primary
        _templates:
          parquet: &pq
            type: ignored.Dataset
        table:
          <<: *pq
        """
    )
    assert records["table"].type == "pandas.ParquetDataset"
    assert records["table"].layer == "primary"


def test_nested_anchor_without_placeholder_projects_its_target() -> None:
    records = _records(
        """
        _templates:
          parquet: &parquet
            type: pandas.ParquetDataset
        table:
          <<: *parquet
        """
    )
    assert records["table"].type == "pandas.ParquetDataset"


def test_duplicate_key_in_one_file_keeps_the_last_declaration() -> None:
    records = extract_text("a:\n  type: First\na:\n  type: Second\n", "catalog.yml")
    assert [record.type for record in records] == ["Second"]


def test_anchor_points_at_the_key() -> None:
    records = _records(
        """
        first:
          type: pandas.CSVDataset
        second_dataset:
          type: pandas.CSVDataset
        """,
        source="/project/conf/base/catalog.yml",
    )
    anchor = records["second_dataset"].anchor
    assert anchor is not None
    assert anchor.source == "/project/conf/base/catalog.yml"
    assert (anchor.line, anchor.column) == (2, 0)
    assert (anchor.end_line, anchor.end_column) == (2, len("second_dataset"))


def test_invalid_yaml_raises_catalog_syntax_error() -> None:
    with pytest.raises(CatalogSyntaxError) as excinfo:
        extract_text("companies:\n  type: [unclosed\n", "catalog.yml")
    assert excinfo.value.line is not None
    assert excinfo.value.code == "catalog-syntax"


def test_undefined_alias_is_a_syntax_error() -> None:
    with pytest.raises(CatalogSyntaxError):
        extract_text("companies:\n  <<: *missing\n", "catalog.yml")
