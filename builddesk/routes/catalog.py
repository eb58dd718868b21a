# builddesk/routes/catalog.py
from flask import Blueprint, request, jsonify

from builddesk.db.session import get_session
from builddesk.routes.common import build_services, json_body
from builddesk.schemas.dto.catalog_dto import LineItemDTO, EstimationTemplateDTO

catalog_bp = Blueprint('catalog', __name__)


# ======================================================
# 🧱 Line items
# ======================================================

@catalog_bp.route('/line-items', methods=['GET'])
def list_line_items():
    db = get_session()
    try:
        items = build_services(db).catalog.list_line_items(category=request.args.get('category') or None)
        return jsonify([LineItemDTO.from_domain_model(i).model_dump(mode="json") for i in items])
    finally:
        db.close()


@catalog_bp.route('/line-items', methods=['POST'])
def create_line_item():
    """新建单价项 {name, unit, rate, category?, description?}"""
    payload = json_body()
    db = get_session()
    try:
        item = build_services(db).catalog.create_line_item(
            name=payload.get('name'),
            unit=payload.get('unit'),
            rate=payload.get('rate'),
            category=payload.get('category') or "General",
            description=payload.get('description'),
        )
        db.commit()
        return jsonify(LineItemDTO.from_domain_model(item).model_dump(mode="json")), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@catalog_bp.route('/line-items/<line_item_id>', methods=['GET'])
def line_item_detail(line_item_id):
    db = get_session()
    try:
        item = build_services(db).catalog.require_line_item(line_item_id)
        return jsonify(LineItemDTO.from_domain_model(item).model_dump(mode="json"))
    finally:
        db.close()


@catalog_bp.route('/line-items/<line_item_id>', methods=['PATCH'])
def update_line_item(line_item_id):
    payload = json_body()
    db = get_session()
    try:
        item = build_services(db).catalog.update_line_item(line_item_id=line_item_id, updates=payload)
        db.commit()
        return jsonify(LineItemDTO.from_domain_model(item).model_dump(mode="json"))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@catalog_bp.route('/line-items/<line_item_id>', methods=['DELETE'])
def delete_line_item(line_item_id):
    db = get_session()
    try:
        build_services(db).catalog.delete_line_item(line_item_id)
        db.commit()
        return jsonify({"ok": True})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ======================================================
# 📋 Estimation templates
# ======================================================

@catalog_bp.route('/templates', methods=['GET'])
def list_templates():
    db = get_session()
    try:
        templates = build_services(db).catalog.list_templates(category=request.args.get('category') or None)
        return jsonify([EstimationTemplateDTO.from_domain_model(t).model_dump(mode="json") for t in templates])
    finally:
        db.close()


@catalog_bp.route('/templates', methods=['POST'])
def create_template():
    """新建模板 {name, category, items: [{line_item_id, quantity, notes?}]}"""
    payload = json_body()
    db = get_session()
    try:
        template = build_services(db).catalog.create_template(
            name=payload.get('name'),
            category=payload.get('category') or "General",
            items=payload.get('items', []),
        )
        db.commit()
        return jsonify(EstimationTemplateDTO.from_domain_model(template).model_dump(mode="json")), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@catalog_bp.route('/templates/<template_id>', methods=['GET'])
def template_detail(template_id):
    """模板详情，附带按当前单价计算的模板总值"""
    db = get_session()
    try:
        catalog = build_services(db).catalog
        template = catalog.require_template(template_id)
        dto = EstimationTemplateDTO.from_domain_model(template, total_value=catalog.template_value(template_id))
        return jsonify(dto.model_dump(mode="json"))
    finally:
        db.close()


@catalog_bp.route('/templates/<template_id>', methods=['PATCH'])
def update_template(template_id):
    payload = json_body()
    db = get_session()
    try:
        template = build_services(db).catalog.update_template(template_id=template_id, updates=payload)
        db.commit()
        return jsonify(EstimationTemplateDTO.from_domain_model(template).model_dump(mode="json"))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@catalog_bp.route('/templates/<template_id>', methods=['DELETE'])
def delete_template(template_id):
    db = get_session()
    try:
        build_services(db).catalog.delete_template(template_id)
        db.commit()
        return jsonify({"ok": True})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
