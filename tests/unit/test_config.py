"""
Unit tests for XML reader configuration and validation
"""

import pytest

from core.exceptions import ConfigurationError
from core.validation import FailureCollector
from schemas.config import FileAction, XMLReaderConfig


def make_config(**overrides):
    properties = {
        "referenceName": "books",
        "path": "/data/incoming/*",
        "nodePath": "/catalog/book",
        "temporaryFolder": "/tmp/xml-staging",
    }
    properties.update(overrides)
    return XMLReaderConfig.model_validate(properties)


def collect(config):
    collector = FailureCollector(config.reference_name)
    config.validate_config(collector)
    return collector.failures


class TestFileAction:

    @pytest.mark.parametrize("value,expected", [
        (None, FileAction.NONE),
        ("", FileAction.NONE),
        ("archive", FileAction.ARCHIVE),
        (" Move ", FileAction.MOVE),
        ("copy", None),
    ])
    def test_parse(self, value, expected):
        assert FileAction.parse(value) == expected


class TestXMLReaderConfig:

    def test_accepts_snake_case_names(self):
        config = XMLReaderConfig(reference_name="books", path="/in", node_path="/a/b", table_name="t")

        assert config.node_path == "/a/b"
        assert config.tracking_enabled is True

    def test_valid_config_has_no_failures(self):
        assert collect(make_config()) == []

    def test_tracking_disabled_without_table_name(self):
        assert make_config().tracking_enabled is False

    @pytest.mark.parametrize("value", ["YES", "yes", "Yes"])
    def test_reprocessing_required(self, value):
        assert make_config(reprocessingRequired=value).is_reprocessing_required() is True

    @pytest.mark.parametrize("value", ["No", "", None, "true"])
    def test_reprocessing_not_required(self, value):
        assert make_config(reprocessingRequired=value).is_reprocessing_required() is False

    def test_expiry_days(self):
        assert make_config().expiry_days is None
        assert make_config(tableExpiryPeriod="").expiry_days is None
        assert make_config(tableExpiryPeriod="30").expiry_days == 30


class TestValidation:

    def test_archive_without_target_folder(self):
        failures = collect(make_config(actionAfterProcess="ARCHIVE", targetFolder=""))

        assert len(failures) == 1
        assert failures[0].properties == [XMLReaderConfig.TARGET_FOLDER]

    def test_move_with_target_folder_is_valid(self):
        assert collect(make_config(actionAfterProcess="MOVE", targetFolder="/data/done")) == []

    def test_missing_required_properties(self):
        failures = collect(make_config(path="", nodePath=None, temporaryFolder=""))

        properties = [p for f in failures for p in f.properties]
        assert properties == [
            XMLReaderConfig.PATH,
            XMLReaderConfig.NODE_PATH,
            XMLReaderConfig.TEMPORARY_FOLDER,
        ]

    @pytest.mark.parametrize("value", ["-1", "abc"])
    def test_invalid_expiry_period(self, value):
        failures = collect(make_config(tableExpiryPeriod=value))

        assert failures[0].properties == [XMLReaderConfig.TABLE_EXPIRY_PERIOD]

    def test_unknown_action(self):
        failures = collect(make_config(actionAfterProcess="COPY"))

        assert failures[0].properties == [XMLReaderConfig.ACTION_AFTER_PROCESS]

    def test_action_and_reprocessing_are_exclusive(self):
        failures = collect(make_config(actionAfterProcess="DELETE", reprocessingRequired="YES"))

        assert failures[0].properties == [
            XMLReaderConfig.ACTION_AFTER_PROCESS,
            XMLReaderConfig.REPROCESSING_REQUIRED,
        ]

    def test_invalid_regex(self):
        failures = collect(make_config(pattern="[unclosed"))

        assert failures[0].properties == [XMLReaderConfig.PATTERN]

    def test_pattern_requires_glob_path(self):
        failures = collect(make_config(path="/data/incoming/", pattern=r"\.xml$"))

        assert failures[0].properties == [XMLReaderConfig.PATH, XMLReaderConfig.PATTERN]

    def test_pattern_with_glob_path_is_valid(self):
        assert collect(make_config(path="/data/incoming/*", pattern=r"\.xml$")) == []

    def test_failures_are_aggregated(self):
        config = make_config(path="", actionAfterProcess="ARCHIVE", tableExpiryPeriod="-5")

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate_or_raise()

        error = exc_info.value
        assert len(error.failures) == 3
        assert set(error.properties) == {
            XMLReaderConfig.PATH,
            XMLReaderConfig.TARGET_FOLDER,
            XMLReaderConfig.TABLE_EXPIRY_PERIOD,
        }
        assert "3 error(s)" in error.message

    def test_macro_fields_are_not_validated(self):
        config = make_config(path="${input}", tableExpiryPeriod="${days}", pattern="${regex}")

        assert collect(config) == []


class TestMacros:

    def test_resolve_macros(self):
        config = make_config(path="/data/${day}/*", tableName="${table}")

        resolved = config.resolve_macros({"day": "2024-01-15", "table": "books_tracker"})

        assert resolved.path == "/data/2024-01-15/*"
        assert resolved.table_name == "books_tracker"
        assert config.path == "/data/${day}/*"

    def test_no_macros_returns_same_config(self):
        config = make_config()
        assert config.resolve_macros({}) is config

    def test_missing_argument(self):
        config = make_config(path="/data/${day}/*")

        with pytest.raises(ConfigurationError) as exc_info:
            config.resolve_macros({})

        assert exc_info.value.properties == [XMLReaderConfig.PATH]

    def test_snapshot_uses_property_names(self):
        snapshot = make_config(tableName="books_tracker").snapshot()

        assert snapshot["referenceName"] == "books"
        assert snapshot["tableName"] == "books_tracker"
