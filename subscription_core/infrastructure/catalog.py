"""Plan catalog loaded from static definitions."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import pydantic
from pydantic import BaseModel, Field, field_validator

from ..domain.errors import NotFoundError, ValidationError
from ..domain.models import Plan

logger = logging.getLogger(__name__)


class PlanDefinition(BaseModel):
    name: str = Field(..., min_length=1)
    value: int
    price: Decimal = Field(..., ge=0)
    tax_rate: Decimal = Field(Decimal("0"), ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    def to_plan(self, key: str) -> Plan:
        return Plan(
            key=key,
            name=self.name,
            value=self.value,
            price=self.price,
            tax_rate=self.tax_rate,
            currency=self.currency,
        )


class StaticPlanCatalog:
    """In-memory plan catalog keyed by plan key."""

    def __init__(self, plans: Iterable[Plan]) -> None:
        self._plans: Dict[str, Plan] = {}
        for plan in plans:
            if plan.key in self._plans:
                raise ValidationError({"plans": [f"duplicate plan key {plan.key}"]})
            self._plans[plan.key] = plan

    @classmethod
    def from_definitions(cls, definitions: Mapping[str, Mapping[str, Any]]) -> "StaticPlanCatalog":
        plans: List[Plan] = []
        errors: Dict[str, List[str]] = {}
        for key, raw in definitions.items():
            try:
                plans.append(PlanDefinition.model_validate(raw).to_plan(key))
            except pydantic.ValidationError as exc:
                errors[key] = [
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                ]
        if errors:
            raise ValidationError(errors, message="Invalid plan catalog")
        return cls(plans)

    @classmethod
    def from_file(cls, path: Path) -> "StaticPlanCatalog":
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        catalog = cls.from_definitions(payload.get("plans", payload))
        logger.info("Loaded %d plans from %s", len(catalog._plans), path)
        return catalog

    def lookup(self, plan_key: str) -> Plan:
        plan = self._plans.get(plan_key)
        if plan is None:
            raise NotFoundError(resource="Plan", resource_id=plan_key)
        return plan

    def __contains__(self, plan_key: object) -> bool:
        return plan_key in self._plans

    def keys(self) -> Iterable[str]:
        return list(self._plans.keys())
