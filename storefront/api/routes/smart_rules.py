"""Page-builder routes for validating, previewing and managing smart rules."""

from __future__ import annotations

import logging
from typing import Annotated, Any

import pydantic
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel

from storefront.api.dependencies import (
    EngineDependency,
    OrganizationDependency,
    get_filter_validator,
    http_error,
)
from storefront.errors import NotFoundError, ValidationError
from storefront.models.product import ResolvedProduct
from storefront.models.rule import RulePreview, RuleType, SmartRule
from storefront.services.rules.validator import FilterValidator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/smart-rules", tags=["smart-rules"])

ValidatorDependency = Annotated[FilterValidator, Depends(get_filter_validator)]
RulePayload = Annotated[dict[str, Any], Body(...)]


class RuleValidationResult(BaseModel):
    valid: bool
    rule_type: RuleType


class RuleProducts(BaseModel):
    rule_id: str
    count: int
    products: list[ResolvedProduct]


@router.post("/validate", response_model=RuleValidationResult)
async def validate_rule(
    payload: RulePayload, validator: ValidatorDependency
) -> RuleValidationResult:
    """Check a rule configuration without running it."""

    try:
        rule = validator.validate(payload)
    except ValidationError as exc:
        raise http_error(exc) from exc
    return RuleValidationResult(valid=True, rule_type=rule.rule_type)


@router.post("/preview", response_model=RulePreview)
async def preview_rule(
    payload: RulePayload,
    organization_id: OrganizationDependency,
    engine: EngineDependency,
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
) -> RulePreview:
    try:
        return await engine.preview_rule(payload, organization_id, limit=limit)
    except ValidationError as exc:
        raise http_error(exc) from exc


@router.put("/{rule_id}", response_model=SmartRule)
async def save_rule(
    rule_id: str,
    payload: RulePayload,
    organization_id: OrganizationDependency,
    engine: EngineDependency,
    validator: ValidatorDependency,
) -> SmartRule:
    """Create or replace a rule; cached results of the rule are invalidated."""

    try:
        validator.validate(payload)
        rule = SmartRule.model_validate(
            {**payload, "id": rule_id, "organization_id": organization_id}
        )
        return await engine.save_rule(rule)
    except ValidationError as exc:
        raise http_error(exc) from exc
    except pydantic.ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: str,
    organization_id: OrganizationDependency,
    engine: EngineDependency,
) -> None:
    try:
        await engine.delete_rule(rule_id, organization_id)
    except NotFoundError as exc:
        raise http_error(exc) from exc


@router.get("/{rule_id}/products", response_model=RuleProducts)
async def get_rule_products(
    rule_id: str,
    organization_id: OrganizationDependency,
    engine: EngineDependency,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> RuleProducts:
    """Execute a saved rule, served from the rule cache while fresh."""

    try:
        products = await engine.execute_rule(rule_id, organization_id, limit=limit)
    except (NotFoundError, ValidationError) as exc:
        raise http_error(exc) from exc
    return RuleProducts(rule_id=rule_id, count=len(products), products=products)


@router.delete("/{rule_id}/cache")
async def clear_rule_cache(
    rule_id: str,
    organization_id: OrganizationDependency,
    engine: EngineDependency,
) -> dict[str, Any]:
    removed = await engine.clear_rule_cache(rule_id, organization_id)
    logger.info("Cleared %s cached results for rule %s", removed, rule_id)
    return {"status": "cleared", "rule_id": rule_id, "removed": removed}
