import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from ingestion.scheduler import PipelineScheduler


@pytest.fixture
def pipeline_file(tmp_path, input_dir, staging_root):
    path = tmp_path / "pipelines.json"
    path.write_text(json.dumps({
        "sources": [
            {
                "referenceName": "books",
                "path": str(input_dir),
                "nodePath": "/catalog/book",
                "tableName": "books_tracker",
                "temporaryFolder": str(staging_root),
            },
            {
                "referenceName": "orders",
                "path": str(input_dir),
                "nodePath": "/orders/order",
                "temporaryFolder": str(staging_root),
            },
        ]
    }))
    return str(path)


@pytest.mark.asyncio
async def test_scheduler_initialization():
    scheduler = PipelineScheduler()
    assert scheduler.scheduler is not None
    assert scheduler.engine is not None


@pytest.mark.asyncio
async def test_scheduler_job_execution(pipeline_file):
    with patch("ingestion.scheduler.PipelineRunner") as mock_runner_cls:
        mock_runner = AsyncMock()
        mock_runner_cls.return_value = mock_runner

        # Mock database session
        mock_session = AsyncMock()

        with patch("ingestion.scheduler.create_session_maker") as mock_maker:
            mock_maker.return_value = MagicMock()
            mock_maker.return_value.return_value.__aenter__.return_value = mock_session

            scheduler = PipelineScheduler(pipeline_file)

            await scheduler.run_pipeline_job()

            # One run per configured source
            assert mock_runner.run.call_count == 2
            sources = [call.args[0] for call in mock_runner.run.call_args_list]
            assert [s.reference_name for s in sources] == ["books", "orders"]


@pytest.mark.asyncio
async def test_scheduler_job_continues_after_failed_run(pipeline_file):
    with patch("ingestion.scheduler.PipelineRunner") as mock_runner_cls:
        mock_runner = AsyncMock()
        mock_runner.run.side_effect = [Exception("boom"), {"status": "success"}]
        mock_runner_cls.return_value = mock_runner

        with patch("ingestion.scheduler.create_session_maker") as mock_maker:
            mock_maker.return_value = MagicMock()
            mock_maker.return_value.return_value.__aenter__.return_value = AsyncMock()

            scheduler = PipelineScheduler(pipeline_file)
            await scheduler.run_pipeline_job()

            assert mock_runner.run.call_count == 2


@pytest.mark.asyncio
async def test_scheduler_job_skips_invalid_pipeline_file(tmp_path):
    path = tmp_path / "pipelines.json"
    path.write_text(json.dumps([{"referenceName": "books", "path": ""}]))

    with patch("ingestion.scheduler.PipelineRunner") as mock_runner_cls:
        scheduler = PipelineScheduler(str(path))
        await scheduler.run_pipeline_job()

        mock_runner_cls.assert_not_called()


@pytest.mark.asyncio
async def test_scheduler_start_and_stop():
    scheduler = PipelineScheduler()
    scheduler.start()

    job = scheduler.scheduler.get_job("xml_reader_job")
    assert job is not None
    assert job.max_instances == 1

    scheduler.stop()
    scheduler.stop()


@pytest.mark.asyncio
async def test_scheduler_passes_pipeline_arguments(tmp_path, input_dir, staging_root):
    path = tmp_path / "pipelines.json"
    path.write_text(json.dumps({
        "arguments": {"root": str(input_dir.parent)},
        "sources": [{
            "referenceName": "books",
            "path": "${root}/incoming",
            "nodePath": "/catalog/book",
            "tableName": "books_tracker",
            "temporaryFolder": str(staging_root),
        }]
    }))

    with patch("ingestion.scheduler.PipelineRunner") as mock_runner_cls:
        mock_runner = AsyncMock()
        mock_runner_cls.return_value = mock_runner

        with patch("ingestion.scheduler.create_session_maker") as mock_maker:
            mock_maker.return_value = MagicMock()
            mock_maker.return_value.return_value.__aenter__.return_value = AsyncMock()

            scheduler = PipelineScheduler(str(path))
            await scheduler.run_pipeline_job()

            context = mock_runner.run.call_args.args[1]
            assert context.arguments == {"root": str(input_dir.parent)}
