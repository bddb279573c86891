"""
XML reader configuration with field-scoped, aggregated validation
"""

import enum
import re
from typing import Any, ClassVar, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.config import settings
from core.exceptions import ConfigurationError
from core.validation import FailureCollector

MACRO_PATTERN = re.compile(r"\$\{([^}]+)\}")
GLOB_CHARACTERS = ("*", "?", "{", "[")


class FileAction(str, enum.Enum):
    """Action applied to a file after all of its records were emitted"""
    NONE = "NONE"
    DELETE = "DELETE"
    ARCHIVE = "ARCHIVE"
    MOVE = "MOVE"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FileAction"]:
        """Case-insensitive lookup; empty means NONE, unknown means None."""
        if value is None or not value.strip():
            return cls.NONE
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None

    @property
    def needs_target_folder(self) -> bool:
        return self in (FileAction.ARCHIVE, FileAction.MOVE)


class XMLReaderConfig(BaseModel):
    """
    Properties of one XML reader source.

    Accepts the camelCase property names used in pipeline definitions
    (``nodePath``, ``tableName``...) as well as the snake_case attribute
    names. Values may contain ``${name}`` macros, which are left unvalidated
    until ``resolve_macros()`` substitutes runtime arguments.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    PATH: ClassVar[str] = "path"
    PATTERN: ClassVar[str] = "pattern"
    NODE_PATH: ClassVar[str] = "nodePath"
    TABLE_EXPIRY_PERIOD: ClassVar[str] = "tableExpiryPeriod"
    TARGET_FOLDER: ClassVar[str] = "targetFolder"
    TEMPORARY_FOLDER: ClassVar[str] = "temporaryFolder"
    ACTION_AFTER_PROCESS: ClassVar[str] = "actionAfterProcess"
    REPROCESSING_REQUIRED: ClassVar[str] = "reprocessingRequired"

    reference_name: str = Field(..., alias="referenceName", min_length=1)
    path: Optional[str] = Field(None, description="File, directory or glob to read")
    pattern: Optional[str] = Field(None, description="Regex matched against file names")
    node_path: Optional[str] = Field(None, alias="nodePath", description="e.g. /catalog/book")
    action_after_process: Optional[str] = Field("NONE", alias="actionAfterProcess")
    target_folder: Optional[str] = Field(None, alias="targetFolder")
    reprocessing_required: Optional[str] = Field("No", alias="reprocessingRequired")
    table_name: Optional[str] = Field(None, alias="tableName")
    table_expiry_period: Optional[Union[int, str]] = Field(None, alias="tableExpiryPeriod")
    temporary_folder: Optional[str] = Field(
        default_factory=lambda: settings.DEFAULT_TEMPORARY_FOLDER, alias="temporaryFolder"
    )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def is_reprocessing_required(self) -> bool:
        return (self.reprocessing_required or "").strip().upper() == "YES"

    @property
    def file_action(self) -> FileAction:
        action = FileAction.parse(self.action_after_process)
        if action is None:
            raise ConfigurationError(
                f"Unknown action after process: '{self.action_after_process}'.",
                context={"reference_name": self.reference_name}
            )
        return action

    @property
    def tracking_enabled(self) -> bool:
        return bool(self.table_name)

    @property
    def expiry_days(self) -> Optional[int]:
        if self.table_expiry_period is None or self.table_expiry_period == "":
            return None
        return int(self.table_expiry_period)

    # ------------------------------------------------------------------
    # Macros
    # ------------------------------------------------------------------

    def _raw(self, property_name: str) -> Any:
        for name, info in type(self).model_fields.items():
            if info.alias == property_name or name == property_name:
                return getattr(self, name)
        raise KeyError(property_name)

    def contains_macro(self, property_name: str) -> bool:
        value = self._raw(property_name)
        return isinstance(value, str) and MACRO_PATTERN.search(value) is not None

    def resolve_macros(self, arguments: Mapping[str, str]) -> "XMLReaderConfig":
        """Return a copy with every ``${name}`` replaced from ``arguments``."""
        collector = FailureCollector(self.reference_name)
        updates: Dict[str, Any] = {}

        for name in type(self).model_fields:
            value = getattr(self, name)
            if not isinstance(value, str) or not MACRO_PATTERN.search(value):
                continue

            missing = [m for m in MACRO_PATTERN.findall(value) if m not in arguments]
            if missing:
                collector.add_failure(
                    f"No runtime argument for macro(s): {', '.join(missing)}.",
                    "Provide the missing runtime arguments."
                ).with_config_property(type(self).model_fields[name].alias or name)
                continue
            updates[name] = MACRO_PATTERN.sub(lambda m: str(arguments[m.group(1)]), value)

        collector.get_or_raise()
        return self.model_copy(update=updates) if updates else self

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_config(self, collector: FailureCollector) -> None:
        """Add every configuration problem to ``collector``."""
        if not self.contains_macro(self.PATH) and not self.path:
            collector.add_failure("Path cannot be empty.").with_config_property(self.PATH)

        if not self.contains_macro(self.NODE_PATH) and not self.node_path:
            collector.add_failure("Node path cannot be empty.").with_config_property(self.NODE_PATH)

        if not self.contains_macro(self.TABLE_EXPIRY_PERIOD) and self.table_expiry_period not in (None, ""):
            try:
                expiry = int(self.table_expiry_period)
            except (TypeError, ValueError):
                expiry = None
            if expiry is None or expiry < 0:
                collector.add_failure(
                    f"Invalid value: {self.table_expiry_period}.",
                    "Value for 'Table Expiry Period' should either be empty or greater than 0"
                ).with_config_property(self.TABLE_EXPIRY_PERIOD)

        if not self.contains_macro(self.TEMPORARY_FOLDER) and not self.temporary_folder:
            collector.add_failure("Temporary folder cannot be empty.").with_config_property(
                self.TEMPORARY_FOLDER
            )

        action = FileAction.parse(self.action_after_process)
        if action is None:
            collector.add_failure(
                f"Invalid action after process: '{self.action_after_process}'.",
                f"Use one of: {', '.join(a.value for a in FileAction)}."
            ).with_config_property(self.ACTION_AFTER_PROCESS)

        if action is not None and action != FileAction.NONE and self.is_reprocessing_required():
            collector.add_failure(
                "Only one of 'After Processing Action' or 'Reprocessing Required' "
                "may be selected at a time."
            ).with_config_property(self.ACTION_AFTER_PROCESS).with_config_property(
                self.REPROCESSING_REQUIRED
            )

        if action is not None and action.needs_target_folder and not self.target_folder:
            collector.add_failure(
                f"Target folder cannot be empty for Action = '{self.action_after_process}'."
            ).with_config_property(self.TARGET_FOLDER)

        if self.pattern and not self.contains_macro(self.PATTERN):
            try:
                re.compile(self.pattern)
            except re.error:
                collector.add_failure(
                    f"Invalid regular expression: '{self.pattern}'."
                ).with_config_property(self.PATTERN)

            # A regex only filters directory listings produced from a glob
            if self.path and not self.contains_macro(self.PATH) and (
                self.path.endswith("/") or not any(c in self.path for c in GLOB_CHARACTERS)
            ):
                collector.add_failure(
                    "When filtering with regular expressions, the path must "
                    "be a directory and leverage glob syntax.",
                    "Usually the folder path needs to end with '/*'."
                ).with_config_property(self.PATH).with_config_property(self.PATTERN)

    def validate_or_raise(self) -> None:
        collector = FailureCollector(self.reference_name)
        self.validate_config(collector)
        collector.get_or_raise()

    def snapshot(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
