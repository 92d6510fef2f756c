"""AI edit jobs: analyze the sequence, apply each editing instruction, render."""

import logging

from render_service.jobs.models import EditingInstruction, JobOutput, JobRecord, JobType
from render_service.processors.base import JobProcessor, ProcessingContext

logger = logging.getLogger(__name__)

ANALYZE_SECONDS = 2.0
INSTRUCTION_SECONDS = 0.5


class AIEditProcessor(JobProcessor):
    job_type = JobType.AI_EDIT

    async def process(self, job: JobRecord, ctx: ProcessingContext) -> JobOutput:
        # Stage 1: project analysis
        ctx.report(20)
        await ctx.pause(ANALYZE_SECONDS)

        # Stage 2: instructions share 40-100% evenly
        ctx.report(40)
        instructions = job.input_data.editing_instructions or []
        for index, instruction in enumerate(instructions, start=1):
            await self.apply_instruction(instruction, ctx)
            ctx.report(40 + 60 * index / len(instructions))

        return await self.render_output(job, ctx)

    async def apply_instruction(self, instruction: EditingInstruction, ctx: ProcessingContext) -> None:
        logger.debug(
            f"Job {ctx.job.id}: applying {instruction.type} at {instruction.timestamp}s"
        )
        await ctx.pause(INSTRUCTION_SECONDS)
