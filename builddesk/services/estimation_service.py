from typing import Any, Dict, List, Optional
from collections import Counter
from datetime import datetime
from decimal import Decimal

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

from builddesk.models.project_estimation import (
    ProjectEstimation,
    ProjectEstimationItem,
    EstimationVersionCounter,
)
from builddesk.db.enums import IdPrefix
from builddesk.db.id_sequence import next_id, next_ids, sequence_of
from builddesk.errors import NotFoundError, ValidationError, InvariantViolation
from builddesk.services.amounts import quantity_of, rate_of, line_amount, sum_amounts
from builddesk.services.catalog_service import CatalogService
from builddesk.services.project_service import ProjectService
from builddesk.logger import get_logger

logger = get_logger(__name__)

ITEM_EDITABLE_FIELDS = {"quantity", "rate", "notes"}
RECENT_LIMIT = 5


def recency_key(estimation: ProjectEstimation):
    '''createdDate 倒序时的排序键；同一时间按插入顺序（id 序号）'''
    return (estimation.created_date, sequence_of(estimation.id))


class EstimationService:
    """
    Estimation Version Manager.

    Owns ProjectEstimation snapshots and enforces:
    - at most one active estimation per project, exactly one when any exist
    - version = max(high-water mark, existing versions) + 1, never reused
    - total_amount == sum(items.amount), amount == quantity * rate
    - the only estimation of a project cannot be deleted

    Every public method either completes or raises before the caller commits;
    callers must roll back the session on error and serialize calls per project
    (see builddesk.db.locks.project_lock).
    """

    def __init__(
        self,
        db: Session,
        catalog_service: CatalogService,
        project_service: ProjectService,
    ):
        self.db = db
        self.catalog_service = catalog_service
        self.project_service = project_service

    # ======================================================
    # 🔍 Lookup
    # ======================================================

    def list_for_project(self, project_id: str) -> List[ProjectEstimation]:
        '''项目下全部估算版本，最新创建的在前'''
        self.project_service.require_project(project_id)
        return sorted(self._siblings(project_id), key=recency_key, reverse=True)

    def get(self, estimation_id: str) -> ProjectEstimation:
        estimation = self.db.get(ProjectEstimation, estimation_id)
        if not estimation:
            raise NotFoundError.for_entity("ProjectEstimation", estimation_id)
        return estimation

    def get_active(self, project_id: str) -> Optional[ProjectEstimation]:
        return (
            self.db.query(ProjectEstimation)
            .filter(
                ProjectEstimation.project_id == project_id,
                ProjectEstimation.is_active.is_(True),
            )
            .one_or_none()
        )

    # ======================================================
    # 🆕 Create
    # ======================================================

    def create_from_template(
        self,
        *,
        project_id: str,
        template_id: str,
        name: str,
    ) -> ProjectEstimation:
        '''
        从模板生成新的估算版本，并设为项目的有效版本

        规则：
        - 项目或模板不存在 -> NotFoundError
        - 每个模板条目复制为新的估算条目，rate 取目录中的**当前**单价
        - 目录中已删除的 line item rate 记为 0（容忍目录漂移，记录 warning）
        - version = 下一个版本号
        - 同项目其他版本全部置为 inactive

        :param project_id: 项目ID
        :type project_id: str
        :param template_id: 模板ID
        :type template_id: str
        :param name: 估算名称
        :type name: str
        :return: 新估算
        :rtype: ProjectEstimation
        '''
        # 1️⃣ 加载并校验
        self.project_service.require_project(project_id)
        template = self.catalog_service.require_template(template_id)
        name = self._required_name(name)

        # 2️⃣ 按当前单价复制条目
        item_ids = next_ids(self.db, ProjectEstimationItem, IdPrefix.ESTIMATION_ITEM, len(template.items))
        items = []
        for position, (item_id, t_item) in enumerate(zip(item_ids, template.items)):
            line_item = self.catalog_service.get_line_item(t_item.line_item_id)
            if line_item is None:
                logger.warning(
                    "Template %s references missing LineItem %s; using rate 0",
                    template.id,
                    t_item.line_item_id,
                )
                rate = Decimal("0")
            else:
                rate = Decimal(line_item.rate)
            quantity = Decimal(t_item.quantity)
            items.append(
                ProjectEstimationItem(
                    id=item_id,
                    line_item_id=t_item.line_item_id,
                    quantity=quantity,
                    rate=rate,
                    amount=line_amount(quantity, rate),
                    notes=t_item.notes,
                    position=position,
                )
            )

        # 3️⃣ 版本号 + 旧版本失效
        version = self._next_version(project_id)
        self._deactivate_all(project_id)

        # 4️⃣ 新版本入库
        now = datetime.now()
        estimation = ProjectEstimation(
            id=next_id(self.db, ProjectEstimation, IdPrefix.ESTIMATION),
            project_id=project_id,
            template_id=template.id,
            name=name,
            version=version,
            is_active=True,
            created_date=now,
            updated_date=now,
            items=items,
            total_amount=sum_amounts(i.amount for i in items),
        )
        self.db.add(estimation)
        self.db.flush()
        self._assert_single_active(project_id)

        # 5️⃣ 时间线
        self.project_service.append_timeline_event(
            project_id=project_id,
            title=f"New Estimation Created: {estimation.name}",
            description=f"Estimation based on {template.name} template with {len(items)} items",
        )
        logger.info(
            "Estimation created: %s project=%s version=%d total=%s",
            estimation.id,
            project_id,
            version,
            estimation.total_amount,
        )
        return estimation

    def duplicate(self, *, estimation_id: str, new_name: str) -> ProjectEstimation:
        '''
        深拷贝一个估算版本：新条目 id，新版本号，设为有效版本，
        total_amount 与 template_id 保持与源版本一致
        '''
        source = self.get(estimation_id)
        new_name = self._required_name(new_name)
        project_id = source.project_id

        item_ids = next_ids(self.db, ProjectEstimationItem, IdPrefix.ESTIMATION_ITEM, len(source.items))
        items = [
            ProjectEstimationItem(
                id=item_id,
                line_item_id=item.line_item_id,
                quantity=item.quantity,
                rate=item.rate,
                amount=item.amount,
                notes=item.notes,
                position=position,
            )
            for position, (item_id, item) in enumerate(zip(item_ids, source.items))
        ]

        version = self._next_version(project_id)
        self._deactivate_all(project_id)

        now = datetime.now()
        copy = ProjectEstimation(
            id=next_id(self.db, ProjectEstimation, IdPrefix.ESTIMATION),
            project_id=project_id,
            template_id=source.template_id,
            name=new_name,
            version=version,
            is_active=True,
            created_date=now,
            updated_date=now,
            items=items,
            total_amount=source.total_amount,
        )
        self.db.add(copy)
        self.db.flush()
        self._assert_single_active(project_id)

        self.project_service.append_timeline_event(
            project_id=project_id,
            title=f"Estimation Duplicated: {copy.name}",
            description=f"Copied from {source.name} (v{source.version}) as version {version}",
        )
        logger.info("Estimation duplicated: %s -> %s version=%d", source.id, copy.id, version)
        return copy

    # ======================================================
    # ✏️ Items
    # ======================================================

    def update_item(
        self,
        *,
        estimation_id: str,
        item_id: str,
        updates: Dict[str, Any],
    ) -> ProjectEstimation:
        '''
        修改估算条目的 quantity / rate / notes

        规则：
        - 部分更新：未给出的 quantity / rate 沿用原值（不是 0）
        - 无论改了什么字段，都重新计算 amount 与 total_amount
        - updated_date 刷新为当前时间，version 不变

        :param estimation_id: 估算ID
        :type estimation_id: str
        :param item_id: 条目ID
        :type item_id: str
        :param updates: {"quantity"?, "rate"?, "notes"?}
        :type updates: Dict[str, Any]
        :return: 更新后的估算
        :rtype: ProjectEstimation
        '''
        estimation = self.get(estimation_id)
        item = self._find_item(estimation, item_id)

        unknown = set(updates) - ITEM_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Field(s) not editable: {', '.join(sorted(unknown))}")

        # 先校验，再赋值
        quantity = quantity_of(updates["quantity"]) if "quantity" in updates else Decimal(item.quantity)
        rate = rate_of(updates["rate"]) if "rate" in updates else Decimal(item.rate)
        notes = self._clean_notes(updates["notes"]) if "notes" in updates else item.notes

        item.quantity = quantity
        item.rate = rate
        item.notes = notes
        item.amount = line_amount(quantity, rate)

        self._recompute_total(estimation)
        self.db.flush()
        return estimation

    def add_item(
        self,
        *,
        estimation_id: str,
        line_item_id: str,
        quantity: Any,
        rate: Any = None,
        notes: Optional[str] = None,
    ) -> ProjectEstimation:
        '''
        追加条目，rate 缺省取目录当前单价
        '''
        estimation = self.get(estimation_id)
        line_item = self.catalog_service.require_line_item(line_item_id)

        quantity = quantity_of(quantity)
        rate = rate_of(rate) if rate is not None else Decimal(line_item.rate)
        notes = self._clean_notes(notes)
        position = max((i.position for i in estimation.items), default=-1) + 1

        estimation.items.append(
            ProjectEstimationItem(
                id=next_id(self.db, ProjectEstimationItem, IdPrefix.ESTIMATION_ITEM),
                line_item_id=line_item.id,
                quantity=quantity,
                rate=rate,
                amount=line_amount(quantity, rate),
                notes=notes,
                position=position,
            )
        )
        self._recompute_total(estimation)
        self.db.flush()
        return estimation

    def delete_item(self, *, estimation_id: str, item_id: str) -> ProjectEstimation:
        '''删除条目；允许删到 0 条，下限只在估算版本层面约束'''
        estimation = self.get(estimation_id)
        item = self._find_item(estimation, item_id)

        estimation.items.remove(item)
        self._recompute_total(estimation)
        self.db.flush()
        return estimation

    # ======================================================
    # 📌 Activation
    # ======================================================

    def set_active(self, *, project_id: str, estimation_id: str) -> bool:
        '''
        将指定估算设为项目的有效版本

        id 不属于该项目时返回 False 且不做任何修改（UI 切换幂等，不抛异常）；
        重复调用结果相同

        :return: 是否成功
        :rtype: bool
        '''
        siblings = self._siblings(project_id)
        target = next((e for e in siblings if e.id == estimation_id), None)
        if target is None:
            return False

        currently_active = [e for e in siblings if e.is_active]
        if currently_active == [target]:
            return True

        # 先全部失效并 flush，再激活目标，任何时刻不会出现两个有效版本
        self._deactivate_all(project_id)
        target.is_active = True
        self.db.flush()
        self._assert_single_active(project_id)

        self.project_service.append_timeline_event(
            project_id=project_id,
            title=f"Active Estimation Changed: {target.name}",
            description=f"Version {target.version} is now the active estimation",
        )
        logger.info("Estimation activated: %s project=%s", target.id, project_id)
        return True

    def reactivate_most_recent(
        self,
        project_id: str,
        excluding_id: Optional[str] = None,
    ) -> Optional[ProjectEstimation]:
        '''
        将剩余版本中 created_date 最新的一个设为有效版本（同一时间取后插入的）
        所有删除路径共用

        :param project_id: 项目ID
        :type project_id: str
        :param excluding_id: 不参与候选的估算ID（正在删除的那个）
        :type excluding_id: Optional[str]
        :return: 新的有效版本；没有候选时返回 None
        :rtype: Optional[ProjectEstimation]
        '''
        candidates = [e for e in self._siblings(project_id) if e.id != excluding_id]
        if not candidates:
            return None

        chosen = max(candidates, key=recency_key)
        for candidate in candidates:
            candidate.is_active = False
        self.db.flush()
        chosen.is_active = True
        self.db.flush()
        return chosen

    # ======================================================
    # 🗑 Delete
    # ======================================================

    def delete_estimation(self, estimation_id: str) -> bool:
        '''
        删除估算版本

        规则：
        - 项目唯一的估算版本不可删除 -> InvariantViolation
        - 删除的是有效版本时，剩余版本中最新创建的成为有效版本

        :param estimation_id: 估算ID
        :type estimation_id: str
        :return: True
        :rtype: bool
        '''
        estimation = self.get(estimation_id)
        project_id = estimation.project_id

        remaining = [e for e in self._siblings(project_id) if e.id != estimation.id]
        if not remaining:
            logger.warning("Refused to delete last estimation %s of project %s", estimation.id, project_id)
            raise InvariantViolation(
                f"Cannot delete the only estimation of project {project_id}"
            )

        was_active = estimation.is_active
        name, version = estimation.name, estimation.version
        self.db.delete(estimation)
        self.db.flush()

        if was_active:
            self.reactivate_most_recent(project_id, excluding_id=estimation_id)
        self._assert_single_active(project_id)

        self.project_service.append_timeline_event(
            project_id=project_id,
            title=f"Estimation Deleted: {name}",
            description=f"Version {version} was removed",
        )
        logger.info("Estimation deleted: %s project=%s was_active=%s", estimation_id, project_id, was_active)
        return True

    # ======================================================
    # 📊 Reporting
    # ======================================================

    def statistics(self, project_id: Optional[str] = None) -> Dict[str, Any]:
        '''
        估算统计：数量 / 有效版本总值 / 有效版本均值 / 最常用模板 / 最近 5 个版本
        '''
        query = self.db.query(ProjectEstimation)
        if project_id:
            self.project_service.require_project(project_id)
            query = query.filter(ProjectEstimation.project_id == project_id)
        estimations = query.all()

        active = [e for e in estimations if e.is_active]
        total_value = sum((Decimal(e.total_amount) for e in active), Decimal("0"))
        template_usage = Counter(e.template_id for e in estimations if e.template_id)
        most_used = template_usage.most_common(1)

        return {
            "total_estimations": len(estimations),
            "total_value": total_value,
            "average_estimation_value": (total_value / len(active)) if active else Decimal("0"),
            "most_used_template": most_used[0][0] if most_used else None,
            "recent_estimations": sorted(estimations, key=recency_key, reverse=True)[:RECENT_LIMIT],
        }

    def export_dataframe(self, estimation_id: str) -> pd.DataFrame:
        """
        Build a human-readable table of one estimation.
        This function does NOT persist data.
        """
        estimation = self.get(estimation_id)

        rows = []
        for item in estimation.items:
            line_item = self.catalog_service.get_line_item(item.line_item_id)
            rows.append([
                line_item.name if line_item else "Unknown Item",
                line_item.category if line_item else "",
                float(item.quantity),
                line_item.unit if line_item else "-",
                float(item.rate),
                float(item.amount),
                item.notes or "",
            ])
        rows.append(["Total Amount", "", None, "", None, float(estimation.total_amount), ""])

        return pd.DataFrame(
            rows,
            columns=["Item", "Category", "Quantity", "Unit", "Rate", "Amount", "Notes"],
        )

    # ======================================================
    # 🔧 Internal
    # ======================================================

    def _siblings(self, project_id: str) -> List[ProjectEstimation]:
        return (
            self.db.query(ProjectEstimation)
            .filter(ProjectEstimation.project_id == project_id)
            .all()
        )

    def _next_version(self, project_id: str) -> int:
        '''
        计算下一个 version

        规则：
        - max(高水位, 现存最大 version, 0) + 1
        - 高水位在删除最新版本后依然保留，因此版本号永不复用
        '''
        existing_max = (
            self.db.query(func.max(ProjectEstimation.version))
            .filter(ProjectEstimation.project_id == project_id)
            .scalar()
        ) or 0

        counter = self.db.get(EstimationVersionCounter, project_id)
        high_water = counter.last_version if counter else 0
        version = max(high_water, existing_max) + 1

        if counter is None:
            self.db.add(EstimationVersionCounter(project_id=project_id, last_version=version))
        else:
            counter.last_version = version
        return version

    def _deactivate_all(self, project_id: str) -> None:
        for estimation in self._siblings(project_id):
            estimation.is_active = False
        self.db.flush()

    def _recompute_total(self, estimation: ProjectEstimation) -> None:
        estimation.total_amount = sum_amounts(item.amount for item in estimation.items)
        estimation.updated_date = datetime.now()

    def _assert_single_active(self, project_id: str) -> None:
        siblings = self._siblings(project_id)
        active_count = sum(1 for e in siblings if e.is_active)
        if active_count > 1:
            raise InvariantViolation(f"Project {project_id} has {active_count} active estimations")
        if siblings and active_count == 0:
            raise InvariantViolation(f"Project {project_id} has estimations but none is active")

    @staticmethod
    def _find_item(estimation: ProjectEstimation, item_id: str) -> ProjectEstimationItem:
        for item in estimation.items:
            if item.id == item_id:
                return item
        raise NotFoundError.for_entity("ProjectEstimationItem", item_id)

    @staticmethod
    def _required_name(name: Any) -> str:
        if name is None or str(name).strip() == "":
            raise ValidationError("name is required", field="name")
        return str(name).strip()

    @staticmethod
    def _clean_notes(notes: Any) -> Optional[str]:
        '''None / 空白 -> None；非字符串直接拒绝'''
        if notes is None:
            return None
        if not isinstance(notes, str):
            raise ValidationError(f"notes must be a string, got {notes!r}", field="notes")
        return notes.strip() or None
