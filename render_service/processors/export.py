"""Export jobs: encode the sequence with a resolution/quality preset."""

import logging

from render_service.jobs.errors import InvalidJobInputError
from render_service.jobs.models import JobOutput, JobRecord, JobType
from render_service.processors.base import JobProcessor, ProcessingContext
from render_service.rendering.presets import get_preset

logger = logging.getLogger(__name__)

STEP_SECONDS = 1.0


class ExportProcessor(JobProcessor):
    job_type = JobType.EXPORT

    async def process(self, job: JobRecord, ctx: ProcessingContext) -> JobOutput:
        settings = job.input_data.output_settings
        try:
            preset = get_preset(settings.preset)
        except KeyError:
            raise InvalidJobInputError(job.id, f"unknown preset: {settings.preset}")

        logger.info(
            f"Job {job.id}: exporting {preset.name} {preset.width}x{preset.height} "
            f"({preset.video_codec} {preset.video_bitrate}, quality={settings.quality})"
        )
        for progress in range(0, 100, 10):
            ctx.report(progress)
            await ctx.pause(STEP_SECONDS)

        return await self.render_output(job, ctx)
