import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.database import create_engine, create_session_maker
from ingestion.base import RunContext
from ingestion.runner import PipelineRunner
from ingestion.pipeline_config import get_filesystem, load_pipeline_arguments, load_pipeline_configs
from ingestion.sources.xml_reader import XMLReaderSource

logger = logging.getLogger(__name__)


class PipelineScheduler:
    def __init__(self, pipeline_file: str = None):
        self.pipeline_file = pipeline_file or settings.PIPELINE_CONFIG_FILE
        self.scheduler = AsyncIOScheduler()
        self.engine = create_engine()
        self.SessionLocal = create_session_maker(self.engine)

    async def run_pipeline_job(self):
        """Job to run every configured XML reader once"""
        if not self.pipeline_file:
            logger.debug("Scheduler: no pipeline file configured")
            return

        logger.info("Scheduler: Starting XML reader job")
        try:
            configs = load_pipeline_configs(self.pipeline_file)
            arguments = load_pipeline_arguments(self.pipeline_file)
        except Exception as e:
            logger.error(f"Scheduler: invalid pipeline file - {e}")
            return

        for config in configs:
            async with self.SessionLocal() as session:
                try:
                    runner = PipelineRunner(session)
                    source = XMLReaderSource(
                        config=config,
                        fs=get_filesystem(config.path),
                        db_session=session
                    )
                    await runner.run(source, RunContext(arguments=arguments))
                except Exception as e:
                    logger.error(f"Scheduler: run of {config.reference_name} failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_pipeline_job,
            trigger=IntervalTrigger(minutes=settings.SCHEDULE_INTERVAL_MINUTES),
            id="xml_reader_job",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        logger.info("Pipeline Scheduler started")

    def stop(self):
        if not self.scheduler.running:
            return
        self.scheduler.shutdown()
        logger.info("Pipeline Scheduler stopped")
