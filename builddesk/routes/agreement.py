# builddesk/routes/agreement.py
from flask import Blueprint, request, jsonify, make_response

from builddesk.db.session import get_session
from builddesk.routes.common import build_services, json_body, locked_project
from builddesk.schemas.dto.agreement_dto import AgreementDTO, AgreementPreviewDTO

agreement_bp = Blueprint('agreement', __name__)


@agreement_bp.route('/agreements', methods=['GET'])
def list_agreements():
    db = get_session()
    try:
        agreements = build_services(db).agreements.list_agreements(
            agreement_type=request.args.get('type') or None
        )
        return jsonify([AgreementDTO.from_domain_model(a).model_dump(mode="json") for a in agreements])
    finally:
        db.close()


@agreement_bp.route('/agreements', methods=['POST'])
def create_agreement():
    """新建合同模板 {name, type?, template_content?}"""
    payload = json_body()
    db = get_session()
    try:
        agreement = build_services(db).agreements.create_agreement(
            name=payload.get('name'),
            type=payload.get('type') or "Construction",
            template_content=payload.get('template_content'),
        )
        db.commit()
        return jsonify(AgreementDTO.from_domain_model(agreement).model_dump(mode="json")), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@agreement_bp.route('/agreements/<agreement_id>', methods=['GET'])
def detail(agreement_id):
    db = get_session()
    try:
        agreement = build_services(db).agreements.get_agreement(agreement_id)
        return jsonify(AgreementDTO.from_domain_model(agreement).model_dump(mode="json"))
    finally:
        db.close()


@agreement_bp.route('/agreements/<agreement_id>', methods=['PATCH'])
def update_agreement(agreement_id):
    payload = json_body()
    db = get_session()
    try:
        agreement = build_services(db).agreements.update_agreement(agreement_id=agreement_id, updates=payload)
        db.commit()
        return jsonify(AgreementDTO.from_domain_model(agreement).model_dump(mode="json"))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@agreement_bp.route('/agreements/<agreement_id>', methods=['DELETE'])
def delete_agreement(agreement_id):
    db = get_session()
    try:
        build_services(db).agreements.delete_agreement(agreement_id)
        db.commit()
        return jsonify({"ok": True})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@agreement_bp.route('/agreements/<agreement_id>/preview', methods=['GET'])
def preview(agreement_id):
    """示例项目渲染预览"""
    db = get_session()
    try:
        result = build_services(db).agreements.preview(agreement_id)
        return jsonify(AgreementPreviewDTO(**result).model_dump(mode="json"))
    finally:
        db.close()


@agreement_bp.route('/projects/<project_id>/agreements/<agreement_id>/generate', methods=['POST'])
def generate(project_id, agreement_id):
    """
    生成项目合同
    生成成功后再写 "Agreement Generated" 时间线事件，生成失败不留痕
    """
    db = get_session()
    try:
        with locked_project(db, project_id):
            services = build_services(db)
            html = services.agreements.generate(project_id=project_id, agreement_id=agreement_id)
            agreement = services.agreements.get_agreement(agreement_id)
            services.projects.record_agreement_generated(project_id=project_id, agreement_name=agreement.name)
            db.commit()
        return jsonify({"html": html})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@agreement_bp.route('/projects/<project_id>/agreements/<agreement_id>/print', methods=['GET'])
def print_page(project_id, agreement_id):
    """可打印的合同页面（只读，不写时间线）"""
    db = get_session()
    try:
        services = build_services(db)
        project = services.projects.require_project(project_id)
        html = services.agreements.generate(project_id=project_id, agreement_id=agreement_id)
        response = make_response(services.agreements.render_printable(project, html))
        response.headers['Content-Type'] = 'text/html; charset=utf-8'
        return response
    finally:
        db.close()
