from builddesk.models.project import Project, TimelineEvent
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import date, datetime


class TimelineEventDTO(BaseModel):
    id: str
    title: str
    date: datetime
    status: str
    description: Optional[str] = None

    @classmethod
    def from_domain_model(cls, event: TimelineEvent) -> "TimelineEventDTO":
        return cls(
            id=event.id,
            title=event.title,
            date=event.date,
            status=event.status.value,
            description=event.description,
        )


class ProjectDTO(BaseModel):
    id: str
    name: str
    date_created: date

    client_name: str
    client_address: str
    phone_number: str
    email: Optional[str] = None

    project_address: str
    agreement_date: Optional[date] = None
    project_type: str
    number_of_floors: int
    project_duration: int
    estimated_budget: float

    status: str
    timeline: List[TimelineEventDTO] = []

    @classmethod
    def from_domain_model(cls, project: Project, *, with_timeline: bool = True) -> "ProjectDTO":
        return cls(
            id=project.id,
            name=project.name,
            date_created=project.date_created,
            client_name=project.client_name,
            client_address=project.client_address,
            phone_number=project.phone_number,
            email=project.email,
            project_address=project.project_address,
            agreement_date=project.agreement_date,
            project_type=project.project_type,
            number_of_floors=project.number_of_floors,
            project_duration=project.project_duration,
            estimated_budget=float(project.estimated_budget or 0),
            status=project.status.value,
            timeline=[TimelineEventDTO.from_domain_model(e) for e in project.timeline] if with_timeline else [],
        )


class ProjectStatisticsDTO(BaseModel):
    total_projects: int
    active_projects: int
    completed_projects: int
    total_value: float
    average_project_duration: float

    @classmethod
    def from_domain_model(cls, stats: Dict[str, Any]) -> "ProjectStatisticsDTO":
        return cls(
            total_projects=stats["total_projects"],
            active_projects=stats["active_projects"],
            completed_projects=stats["completed_projects"],
            total_value=float(stats["total_value"]),
            average_project_duration=float(stats["average_project_duration"]),
        )
