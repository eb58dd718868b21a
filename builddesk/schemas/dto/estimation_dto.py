from builddesk.models.project_estimation import ProjectEstimation, ProjectEstimationItem
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime


class ProjectEstimationItemDTO(BaseModel):
    id: str
    line_item_id: str
    quantity: float
    rate: float
    amount: float
    notes: Optional[str] = None

    @classmethod
    def from_domain_model(cls, item: ProjectEstimationItem) -> "ProjectEstimationItemDTO":
        return cls(
            id=item.id,
            line_item_id=item.line_item_id,
            quantity=float(item.quantity),
            rate=float(item.rate),
            amount=float(item.amount),
            notes=item.notes,
        )


class ProjectEstimationDTO(BaseModel):
    id: str
    project_id: str
    template_id: Optional[str] = None
    name: str
    version: int
    is_active: bool

    total_amount: float

    created_date: datetime
    updated_date: datetime

    items: List[ProjectEstimationItemDTO]

    @classmethod
    def from_domain_model(cls, estimation: ProjectEstimation) -> "ProjectEstimationDTO":
        return cls(
            id=estimation.id,
            project_id=estimation.project_id,
            template_id=estimation.template_id,
            name=estimation.name,
            version=estimation.version,
            is_active=bool(estimation.is_active),
            total_amount=float(estimation.total_amount or 0),
            created_date=estimation.created_date,
            updated_date=estimation.updated_date,
            items=[ProjectEstimationItemDTO.from_domain_model(i) for i in estimation.items],
        )


class EstimationStatisticsDTO(BaseModel):
    total_estimations: int
    total_value: float
    average_estimation_value: float
    most_used_template: Optional[str] = None
    recent_estimations: List[ProjectEstimationDTO]

    @classmethod
    def from_domain_model(cls, stats: Dict[str, Any]) -> "EstimationStatisticsDTO":
        return cls(
            total_estimations=stats["total_estimations"],
            total_value=float(stats["total_value"]),
            average_estimation_value=float(stats["average_estimation_value"]),
            most_used_template=stats["most_used_template"],
            recent_estimations=[
                ProjectEstimationDTO.from_domain_model(e) for e in stats["recent_estimations"]
            ],
        )
