"""Processor registry with auto-discovery by job type."""

import importlib
import inspect
import logging
import pkgutil
from typing import Dict, List, Optional

from render_service.jobs.models import JobType
from render_service.processors.base import JobProcessor

logger = logging.getLogger(__name__)


class ProcessorRegistry:
    """Maps each job type to the processor that runs it.

    - discover() scans render_service.processors for JobProcessor subclasses
    - register() adds or replaces a processor explicitly
    """

    def __init__(self):
        self._processors: Dict[JobType, JobProcessor] = {}

    def discover(self) -> None:
        """Scan the processors package for JobProcessor subclasses and register them."""
        import render_service.processors as processors_pkg

        for importer, modname, ispkg in pkgutil.walk_packages(
            processors_pkg.__path__, prefix="render_service.processors."
        ):
            if ispkg:
                continue
            if modname in ("render_service.processors.base", "render_service.processors.registry"):
                continue
            try:
                mod = importlib.import_module(modname)
            except Exception as e:
                logger.warning(f"Failed to import {modname}: {e}")
                continue

            for name, obj in inspect.getmembers(mod, inspect.isclass):
                if (
                    issubclass(obj, JobProcessor)
                    and obj is not JobProcessor
                    and not inspect.isabstract(obj)
                    and obj.__module__ == modname
                ):
                    self.register(obj())

    def register(self, processor: JobProcessor) -> None:
        self._processors[processor.job_type] = processor
        logger.info(f"Registered processor for {processor.job_type.value}: {type(processor).__name__}")

    def get(self, job_type: JobType) -> Optional[JobProcessor]:
        return self._processors.get(job_type)

    def job_types(self) -> List[JobType]:
        return list(self._processors)


def default_registry() -> ProcessorRegistry:
    registry = ProcessorRegistry()
    registry.discover()
    return registry
