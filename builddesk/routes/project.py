# builddesk/routes/project.py
from flask import Blueprint, request, jsonify

from builddesk.db.session import get_session
from builddesk.routes.common import build_services, json_body, locked_project
from builddesk.schemas.dto.project_dto import ProjectDTO, ProjectStatisticsDTO, TimelineEventDTO
from builddesk.errors import ValidationError

project_bp = Blueprint('project', __name__, url_prefix='/projects')

REQUIRED_CREATE_FIELDS = ("name", "client_name", "client_address", "project_address", "phone_number")
OPTIONAL_CREATE_FIELDS = (
    "email",
    "agreement_date",
    "project_type",
    "number_of_floors",
    "project_duration",
    "estimated_budget",
    "status",
)


@project_bp.route('', methods=['GET'])
def list_projects():
    """项目列表，支持 search / status 筛选"""
    db = get_session()
    try:
        services = build_services(db)
        projects = services.projects.list_projects(
            search=request.args.get('search', '').strip() or None,
            status=request.args.get('status') or None,
        )
        return jsonify([
            ProjectDTO.from_domain_model(p, with_timeline=False).model_dump(mode="json")
            for p in projects
        ])
    finally:
        db.close()


@project_bp.route('', methods=['POST'])
def create_project():
    """创建项目"""
    payload = json_body()
    db = get_session()
    try:
        unknown = set(payload) - set(REQUIRED_CREATE_FIELDS) - set(OPTIONAL_CREATE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")

        services = build_services(db)
        project = services.projects.create_project(
            **{field: payload.get(field) for field in REQUIRED_CREATE_FIELDS},
            **{field: payload[field] for field in OPTIONAL_CREATE_FIELDS if field in payload},
        )
        db.commit()
        return jsonify(ProjectDTO.from_domain_model(project).model_dump(mode="json")), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/statistics', methods=['GET'])
def project_statistics():
    db = get_session()
    try:
        stats = build_services(db).projects.statistics()
        return jsonify(ProjectStatisticsDTO.from_domain_model(stats).model_dump(mode="json"))
    finally:
        db.close()


@project_bp.route('/<project_id>', methods=['GET'])
def detail(project_id):
    """项目详情（含时间线）"""
    db = get_session()
    try:
        project = build_services(db).projects.require_project(project_id)
        return jsonify(ProjectDTO.from_domain_model(project).model_dump(mode="json"))
    finally:
        db.close()


@project_bp.route('/<project_id>', methods=['PATCH'])
def update_project(project_id):
    """部分更新项目，变化会写入时间线"""
    payload = json_body()
    db = get_session()
    try:
        with locked_project(db, project_id):
            project = build_services(db).projects.update_project(project_id=project_id, updates=payload)
            db.commit()
        return jsonify(ProjectDTO.from_domain_model(project).model_dump(mode="json"))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/<project_id>', methods=['DELETE'])
def delete_project(project_id):
    db = get_session()
    try:
        with locked_project(db, project_id):
            build_services(db).projects.delete_project(project_id)
            db.commit()
        return jsonify({"ok": True})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@project_bp.route('/<project_id>/timeline', methods=['POST'])
def append_timeline_event(project_id):
    """手动追加时间线事件 {title, status?, description?, date?}"""
    payload = json_body()
    db = get_session()
    try:
        with locked_project(db, project_id):
            event = build_services(db).projects.append_timeline_event(
                project_id=project_id,
                title=payload.get('title'),
                status=payload.get('status', 'completed'),
                description=payload.get('description'),
                date=payload.get('date'),
            )
            db.commit()
        return jsonify(TimelineEventDTO.from_domain_model(event).model_dump(mode="json")), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
