"""
Run every XML reader of a pipeline file once

Usage:
    python scripts/run_xml_reader.py pipelines.json [name=value ...]

Trailing name=value pairs are runtime arguments used to resolve ${name}
macros in the configs. They override the pipeline file's own ``arguments``.
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine, create_session_maker
from core.exceptions import ConfigurationError
from core.logging import setup_logging
from ingestion.base import RunContext
from ingestion.pipeline_config import get_filesystem, load_pipeline_arguments, load_pipeline_configs
from ingestion.runner import PipelineRunner
from ingestion.sources.xml_reader import XMLReaderSource

logger = logging.getLogger(__name__)


def parse_arguments(pairs):
    arguments = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"Runtime argument must look like name=value: {pair}")
        arguments[name] = value
    return arguments


async def run_pipelines(pipeline_file: str, arguments: dict) -> int:
    """Run all configured sources; returns the number of failed runs"""
    try:
        configs = load_pipeline_configs(pipeline_file)
        arguments = {**load_pipeline_arguments(pipeline_file), **arguments}
    except ConfigurationError as e:
        for failure in e.failures:
            logger.error(f"{', '.join(failure.properties)}: {failure.message}")
        return 1

    engine = create_engine()
    AsyncSessionLocal = create_session_maker(engine)

    failures = 0
    try:
        for config in configs:
            async with AsyncSessionLocal() as session:
                source = XMLReaderSource(config=config, fs=get_filesystem(config.path), db_session=session)
                try:
                    logger.info(f"Running XML reader: {config.reference_name}")
                    result = await PipelineRunner(session).run(source, RunContext(arguments=arguments))
                    logger.info(
                        f"Run completed for {config.reference_name}: "
                        f"Files={result['files_processed']}, "
                        f"Records={result['records_emitted']}"
                    )
                except Exception as e:
                    failures += 1
                    logger.error(f"Run failed for {config.reference_name}: {str(e)}")
                    continue
    finally:
        await engine.dispose()

    return failures


def main():
    parser = argparse.ArgumentParser(description="Run XML reader pipelines once")
    parser.add_argument("pipeline_file", nargs="?", default=settings.PIPELINE_CONFIG_FILE)
    parser.add_argument("arguments", nargs="*", help="Runtime arguments as name=value")
    args = parser.parse_args()

    if not args.pipeline_file:
        parser.error("No pipeline file given and PIPELINE_CONFIG_FILE is not set")

    setup_logging()
    failures = asyncio.run(run_pipelines(args.pipeline_file, parse_arguments(args.arguments)))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
