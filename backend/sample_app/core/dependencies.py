"""
Dependency injection for the sample service
Owns the per-process service instance and exposes it to route handlers
"""

from typing import Optional
import logging

from fastapi import Request

from sample_app.core.config import Settings, get_settings
from sample_app.services.request_counter import RequestCounter
from sample_app.services.sample_service import SampleService

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Holds the service instances for one application"""

    def __init__(self, settings: Optional[Settings] = None, service: Optional[SampleService] = None):
        self.settings = settings or get_settings()
        self.sample_service: Optional[SampleService] = service
        self.started = False

    def initialize(self) -> SampleService:
        """Create the sample service unless one was injected; idempotent"""
        if self.sample_service is None:
            self.sample_service = SampleService(counter=RequestCounter())
            logger.info("Sample service initialized")
        self.started = True
        return self.sample_service

    def shutdown(self) -> None:
        """Interrupt in-flight slow requests and mark the registry stopped"""
        if self.sample_service is not None:
            cancelled = self.sample_service.shutdown()
            logger.info(f"Sample service shut down ({cancelled} in-flight request(s) interrupted)")
        self.started = False

    @property
    def ready(self) -> bool:
        return self.started and self.sample_service is not None


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


def get_sample_service(request: Request) -> SampleService:
    """FastAPI dependency: the application's SampleService, created on first use"""
    registry: ServiceRegistry = request.app.state.registry
    if registry.sample_service is None:
        logger.warning("Sample service requested before startup - initializing lazily")
        return registry.initialize()
    return registry.sample_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.registry.settings
