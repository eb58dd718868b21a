from builddesk.models.line_item import LineItem
from builddesk.models.estimation_template import EstimationTemplate, EstimationTemplateItem
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from decimal import Decimal


class LineItemDTO(BaseModel):
    id: str
    name: str
    category: str
    unit: str
    rate: float
    description: Optional[str] = None

    @classmethod
    def from_domain_model(cls, item: LineItem) -> "LineItemDTO":
        return cls(
            id=item.id,
            name=item.name,
            category=item.category,
            unit=item.unit,
            rate=float(item.rate),
            description=item.description,
        )


class EstimationTemplateItemDTO(BaseModel):
    id: str
    line_item_id: str
    quantity: float
    notes: Optional[str] = None

    @classmethod
    def from_domain_model(cls, item: EstimationTemplateItem) -> "EstimationTemplateItemDTO":
        return cls(
            id=item.id,
            line_item_id=item.line_item_id,
            quantity=float(item.quantity),
            notes=item.notes,
        )


class EstimationTemplateDTO(BaseModel):
    id: str
    name: str
    category: str
    items_count: int
    last_modified: date
    items: List[EstimationTemplateItemDTO]

    # 按当前单价估值，只在详情接口返回
    total_value: Optional[float] = None

    @classmethod
    def from_domain_model(
        cls,
        template: EstimationTemplate,
        *,
        total_value: Optional[Decimal] = None,
    ) -> "EstimationTemplateDTO":
        return cls(
            id=template.id,
            name=template.name,
            category=template.category,
            items_count=template.items_count,
            last_modified=template.last_modified,
            items=[EstimationTemplateItemDTO.from_domain_model(i) for i in template.items],
            total_value=float(total_value) if total_value is not None else None,
        )
