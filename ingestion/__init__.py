"""
Batch ingestion of XML files with exactly-once processed-file tracking.

Modules:
    base: Batch source lifecycle (prepare → process → finalize)
    runner: Drives one run of a source and records it in xml_reader_runs
    scheduler: APScheduler integration for periodic runs
    pipeline_config: Pipeline file loading and fsspec filesystem construction

Subpackages:
    sources: The XML reader source and its run coordination
    tracking: Processed-file tracker, key-value tables, pending-commit staging
    extractors: File listing, XML node extraction, post-process file actions
    loaders: Idempotent upsert of emitted records

Architecture:
    1. Prepare  - validate the config, load the tracker's exclusion set
                  (purging expired entries) and create a staging area
    2. Process  - workers read files in parallel and stage each file they
                  fully handled; the tracker is never written here
    3. Finalize - on success the staging area is drained and committed to
                  the tracker in one write; on failure nothing is committed

Usage:
    from ingestion.runner import PipelineRunner
    from ingestion.sources.xml_reader import XMLReaderSource
    from ingestion.pipeline_config import get_filesystem

Example:
    source = XMLReaderSource(config=config, fs=get_filesystem(config.path), db_session=session)
    result = await PipelineRunner(session).run(source)

    print(f"Committed {result['files_committed']} files")
"""

__all__ = [
    "BatchSource",
    "PipelineRunner",
    "XMLReaderSource",
    "ProcessedFileTracker",
    "PendingCommitStaging",
    "RecordLoader",
]
