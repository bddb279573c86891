"""
Pipeline definitions and filesystem construction

A pipeline file is JSON: either a list of reader configs or an object with a
``sources`` list and an optional ``arguments`` object used to resolve ${name}
macros. Every config is validated before anything runs, and all problems
across all sources are reported together.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import fsspec
from fsspec import AbstractFileSystem
from pydantic import ValidationError as PydanticValidationError

from core.config import settings
from core.exceptions import ConfigurationError
from core.validation import FailureCollector
from schemas.config import XMLReaderConfig
import logging

logger = logging.getLogger(__name__)


def get_filesystem(path: Optional[str] = None, **storage_options: Any) -> AbstractFileSystem:
    """
    Get an fsspec filesystem for ``path``.

    The protocol comes from the path prefix (s3://, hdfs://...) or, for bare
    paths, from ``settings.FILESYSTEM_PROTOCOL``.
    """
    if path and "://" in path:
        protocol = path.split("://")[0]
    else:
        protocol = settings.FILESYSTEM_PROTOCOL

    options = {**settings.FILESYSTEM_OPTIONS, **storage_options}
    return fsspec.filesystem(protocol, **options)


def _read_pipeline_file(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read pipeline file {path}",
            context={"pipeline_file": path}
        ) from e


def load_pipeline_arguments(path: str) -> Dict[str, str]:
    """Runtime arguments declared in a pipeline file, empty when it has none"""
    raw = _read_pipeline_file(path)
    arguments = raw.get("arguments", {}) if isinstance(raw, dict) else {}
    if not isinstance(arguments, dict):
        raise ConfigurationError(
            f"\"arguments\" in {path} must be an object",
            context={"pipeline_file": path}
        )
    return {str(name): str(value) for name, value in arguments.items()}


def load_pipeline_configs(path: str) -> List[XMLReaderConfig]:
    """
    Parse and validate every reader config in a pipeline file.

    Raises:
        ConfigurationError: Unreadable file or any invalid source
    """
    raw = _read_pipeline_file(path)

    entries = raw.get("sources", []) if isinstance(raw, dict) else raw
    collector = FailureCollector(Path(path).name)
    configs: List[XMLReaderConfig] = []

    for index, entry in enumerate(entries):
        try:
            config = XMLReaderConfig.model_validate(entry)
        except PydanticValidationError as e:
            for error in e.errors():
                field = ".".join(str(p) for p in error["loc"])
                collector.add_failure(
                    f"Source #{index}: {error['msg']}"
                ).with_config_property(field)
            continue

        source_collector = FailureCollector(config.reference_name)
        config.validate_config(source_collector)
        for failure in source_collector.failures:
            failure.message = f"{config.reference_name}: {failure.message}"
            collector.failures.append(failure)
        configs.append(config)

    collector.get_or_raise()
    logger.info(f"Loaded {len(configs)} XML reader sources from {path}")
    return configs
