"""
Field-scoped validation failure collection.

Validators add every problem they find to a ``FailureCollector`` instead of
raising on the first one; ``get_or_raise()`` then raises a single
``ConfigurationError`` listing all of them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import ConfigurationError


@dataclass
class ValidationFailure:
    """One validation problem, tied to the config properties that caused it."""
    message: str
    corrective_action: Optional[str] = None
    properties: List[str] = field(default_factory=list)

    def with_config_property(self, name: str) -> "ValidationFailure":
        self.properties.append(name)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "corrective_action": self.corrective_action,
            "properties": list(self.properties),
        }


class FailureCollector:
    """Accumulates validation failures for one stage."""

    def __init__(self, stage_name: Optional[str] = None):
        self.stage_name = stage_name
        self.failures: List[ValidationFailure] = []

    def add_failure(self, message: str, corrective_action: Optional[str] = None) -> ValidationFailure:
        failure = ValidationFailure(message=message, corrective_action=corrective_action)
        self.failures.append(failure)
        return failure

    def get_or_raise(self) -> None:
        if not self.failures:
            return
        prefix = f"Stage '{self.stage_name}'" if self.stage_name else "Configuration"
        raise ConfigurationError(
            f"{prefix} has {len(self.failures)} error(s): "
            + "; ".join(f.message for f in self.failures),
            failures=self.failures,
            context={"stage_name": self.stage_name} if self.stage_name else None,
        )
