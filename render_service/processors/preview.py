"""Preview jobs: one fast low-fidelity render."""

from render_service.jobs.models import JobOutput, JobRecord, JobType
from render_service.processors.base import JobProcessor, ProcessingContext

RENDER_SECONDS = 1.0


class PreviewProcessor(JobProcessor):
    job_type = JobType.PREVIEW

    async def process(self, job: JobRecord, ctx: ProcessingContext) -> JobOutput:
        ctx.report(50)
        await ctx.pause(RENDER_SECONDS)
        return await self.render_output(job, ctx, preview=True)
