"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The Database instance is injected and shared by every service.
    """

    # Infrastructure dependencies (injected)
    db: object  # Database instance

    # Services (lazy-loaded via properties)
    _gamification_service: Optional[object] = field(default=None, init=False, repr=False)
    _accountability_service: Optional[object] = field(default=None, init=False, repr=False)
    _missed_workout_service: Optional[object] = field(default=None, init=False, repr=False)
    _personal_record_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def gamification_service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._gamification_service is None:
            from personalfit.services.gamification_service import GamificationService
            self._gamification_service = GamificationService(self.db)
            logger.debug("GamificationService instantiated")
        return self._gamification_service

    @property
    def accountability_service(self):
        """Get AccountabilityService instance (lazy-loaded)"""
        if self._accountability_service is None:
            from personalfit.services.accountability_service import AccountabilityService
            self._accountability_service = AccountabilityService(self.db)
            logger.debug("AccountabilityService instantiated")
        return self._accountability_service

    @property
    def missed_workout_service(self):
        """Get MissedWorkoutService instance (lazy-loaded, shares the accountability service)"""
        if self._missed_workout_service is None:
            from personalfit.services.missed_workout_service import MissedWorkoutService
            self._missed_workout_service = MissedWorkoutService(self.db, self.accountability_service)
            logger.debug("MissedWorkoutService instantiated")
        return self._missed_workout_service

    @property
    def personal_record_service(self):
        """Get PersonalRecordService instance (lazy-loaded)"""
        if self._personal_record_service is None:
            from personalfit.services.personal_record_service import PersonalRecordService
            self._personal_record_service = PersonalRecordService(self.db)
            logger.debug("PersonalRecordService instantiated")
        return self._personal_record_service


# Global container instance (initialized by the API lifespan or a script)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() at startup before using services."
        )
    return _container


def init_container(db: object) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        db: Database instance

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(db=db)

    logger.info("Service container initialized")
    return _container
