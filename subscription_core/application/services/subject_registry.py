import logging
from typing import Callable, Dict, Optional

from ...domain.errors import NotFoundError
from ...domain.models import Subject, SubjectRef

logger = logging.getLogger(__name__)

SubjectResolver = Callable[[str], Optional[Subject]]


class SubjectRegistry:
    """Resolves polymorphic subject references by entity type."""

    def __init__(self) -> None:
        self._resolvers: Dict[str, SubjectResolver] = {}

    def register(self, entity_type: str, resolver: SubjectResolver) -> None:
        if entity_type in self._resolvers:
            logger.warning("Replacing subject resolver for %s", entity_type)
        self._resolvers[entity_type] = resolver

    def is_registered(self, entity_type: str) -> bool:
        return entity_type in self._resolvers

    def resolve(self, ref: SubjectRef) -> Subject:
        resolver = self._resolvers.get(ref.entity_type)
        if resolver is None:
            raise NotFoundError(resource="Subject type", resource_id=ref.entity_type)
        subject = resolver(ref.entity_id)
        if subject is None:
            raise NotFoundError(resource="Subject", resource_id=str(ref))
        return subject
