# builddesk/routes/estimation.py
import io

import pandas as pd
from flask import Blueprint, request, jsonify, send_file

from builddesk.db.session import get_session
from builddesk.routes.common import build_services, json_body, locked_project
from builddesk.schemas.dto.estimation_dto import ProjectEstimationDTO, EstimationStatisticsDTO
from builddesk.logger import get_logger

logger = get_logger(__name__)

estimation_bp = Blueprint('estimation', __name__)


def _dump(estimation):
    return ProjectEstimationDTO.from_domain_model(estimation).model_dump(mode="json")


def _project_of(db, estimation_id: str) -> str:
    '''写操作前先查出估算所属项目，用于加锁'''
    return build_services(db).estimations.get(estimation_id).project_id


# ======================================================
# 📁 Project scoped
# ======================================================

@estimation_bp.route('/projects/<project_id>/estimations', methods=['GET'])
def list_estimations(project_id):
    db = get_session()
    try:
        estimations = build_services(db).estimations.list_for_project(project_id)
        return jsonify([_dump(e) for e in estimations])
    finally:
        db.close()


@estimation_bp.route('/projects/<project_id>/estimations', methods=['POST'])
def create_estimation(project_id):
    """从模板创建估算 {template_id, name}"""
    payload = json_body()
    db = get_session()
    try:
        with locked_project(db, project_id):
            estimation = build_services(db).estimations.create_from_template(
                project_id=project_id,
                template_id=payload.get('template_id'),
                name=payload.get('name'),
            )
            db.commit()
        return jsonify(_dump(estimation)), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@estimation_bp.route('/projects/<project_id>/estimations/<estimation_id>/activate', methods=['POST'])
def activate_estimation(project_id, estimation_id):
    """切换有效版本；id 不属于该项目时返回 success=false，不报错"""
    db = get_session()
    try:
        with locked_project(db, project_id):
            success = build_services(db).estimations.set_active(
                project_id=project_id,
                estimation_id=estimation_id,
            )
            db.commit()
        return jsonify({"success": success})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ======================================================
# 📄 Estimation scoped
# ======================================================

@estimation_bp.route('/estimations/statistics', methods=['GET'])
def estimation_statistics():
    db = get_session()
    try:
        stats = build_services(db).estimations.statistics(
            project_id=request.args.get('project_id') or None
        )
        return jsonify(EstimationStatisticsDTO.from_domain_model(stats).model_dump(mode="json"))
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>', methods=['GET'])
def detail(estimation_id):
    db = get_session()
    try:
        return jsonify(_dump(build_services(db).estimations.get(estimation_id)))
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>', methods=['DELETE'])
def delete_estimation(estimation_id):
    """删除估算；项目唯一的估算返回 409"""
    db = get_session()
    try:
        with locked_project(db, _project_of(db, estimation_id)):
            build_services(db).estimations.delete_estimation(estimation_id)
            db.commit()
        return jsonify({"ok": True})
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>/duplicate', methods=['POST'])
def duplicate_estimation(estimation_id):
    payload = json_body()
    db = get_session()
    try:
        with locked_project(db, _project_of(db, estimation_id)):
            copy = build_services(db).estimations.duplicate(
                estimation_id=estimation_id,
                new_name=payload.get('new_name'),
            )
            db.commit()
        return jsonify(_dump(copy)), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>/items', methods=['POST'])
def add_item(estimation_id):
    """追加条目 {line_item_id, quantity, rate?, notes?}"""
    payload = json_body()
    db = get_session()
    try:
        with locked_project(db, _project_of(db, estimation_id)):
            estimation = build_services(db).estimations.add_item(
                estimation_id=estimation_id,
                line_item_id=payload.get('line_item_id'),
                quantity=payload.get('quantity'),
                rate=payload.get('rate'),
                notes=payload.get('notes'),
            )
            db.commit()
        return jsonify(_dump(estimation)), 201
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>/items/<item_id>', methods=['PATCH'])
def update_item(estimation_id, item_id):
    """修改条目 {quantity?, rate?, notes?}"""
    payload = json_body()
    db = get_session()
    try:
        with locked_project(db, _project_of(db, estimation_id)):
            estimation = build_services(db).estimations.update_item(
                estimation_id=estimation_id,
                item_id=item_id,
                updates=payload,
            )
            db.commit()
        return jsonify(_dump(estimation))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>/items/<item_id>', methods=['DELETE'])
def delete_item(estimation_id, item_id):
    db = get_session()
    try:
        with locked_project(db, _project_of(db, estimation_id)):
            estimation = build_services(db).estimations.delete_item(
                estimation_id=estimation_id,
                item_id=item_id,
            )
            db.commit()
        return jsonify(_dump(estimation))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@estimation_bp.route('/estimations/<estimation_id>/export', methods=['GET'])
def export_excel(estimation_id):
    """下载 Excel 格式估算明细"""
    db = get_session()
    try:
        services = build_services(db)
        estimation = services.estimations.get(estimation_id)
        df = services.estimations.export_dataframe(estimation_id)

        # 生成 Excel
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Estimation')

        output.seek(0)

        filename = f"{estimation.name}_v{estimation.version}.xlsx"
        logger.info("Estimation exported: %s (%d rows)", estimation_id, len(df))

        return send_file(
            output,
            mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
            as_attachment=True,
            download_name=filename
        )
    finally:
        db.close()
