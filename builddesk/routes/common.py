# builddesk/routes/common.py
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict

from flask import current_app, request
from sqlalchemy.orm import Session

from builddesk.db.locks import project_lock
from builddesk.errors import ValidationError
from builddesk.services.agreement_service import AgreementService
from builddesk.services.catalog_service import CatalogService
from builddesk.services.estimation_service import EstimationService
from builddesk.services.project_service import ProjectService


@dataclass
class Services:
    projects: ProjectService
    catalog: CatalogService
    estimations: EstimationService
    agreements: AgreementService


def build_services(db: Session) -> Services:
    '''每个请求一套 service，共享同一个 session'''
    project_service = ProjectService(db)
    catalog_service = CatalogService(db)
    estimation_service = EstimationService(db, catalog_service, project_service)
    agreement_service = AgreementService(
        db,
        project_service,
        estimation_service,
        catalog_service,
        company_name=current_app.config.get("COMPANY_NAME"),
    )
    return Services(
        projects=project_service,
        catalog=catalog_service,
        estimations=estimation_service,
        agreements=agreement_service,
    )


def json_body() -> Dict[str, Any]:
    '''请求体必须是 JSON 对象；没有请求体时视为空对象，无法解析时 400'''
    if not request.get_data(cache=True):
        return {}
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@contextmanager
def locked_project(db: Session, project_id: str):
    '''
    持有项目写锁，直到 service 调用和 commit 都完成
    拿到锁后丢弃 session 里缓存的对象，避免读到加锁前的状态
    '''
    with project_lock(project_id):
        db.expire_all()
        yield
