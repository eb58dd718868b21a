from typing import Any, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from builddesk.models.project import Project, TimelineEvent
from builddesk.db.enums import ProjectStatus, TimelineEventStatus, IdPrefix
from builddesk.db.id_sequence import next_id, sequence_of
from builddesk.errors import NotFoundError, ValidationError
from builddesk.services.amounts import to_decimal
from builddesk.logger import get_logger

logger = get_logger(__name__)

CLIENT_FIELDS = ("client_name", "client_address", "phone_number", "email")
DETAIL_FIELDS = (
    "name",
    "project_address",
    "agreement_date",
    "project_type",
    "number_of_floors",
    "project_duration",
    "estimated_budget",
)
REQUIRED_TEXT_FIELDS = ("name", "client_name", "client_address", "project_address", "phone_number")
ACTIVE_STATUSES = (ProjectStatus.NEW, ProjectStatus.UNDER_CONSTRUCTION)


class ProjectService:
    """
    Project Registry: owns Project records and their timeline.

    禁止 ProjectService 接触 ProjectEstimation 的版本逻辑
    timeline 只追加，不修改，不单独删除
    """

    def __init__(self, db: Session):
        self.db = db

    # ======================================================
    # 🔍 Lookup
    # ======================================================

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.db.get(Project, project_id)

    def require_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if not project:
            raise NotFoundError.for_entity("Project", project_id)
        return project

    def list_projects(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[Any] = None,
    ) -> List[Project]:
        '''
        项目列表，按创建日期倒序

        :param search: 在项目名 / 客户名 / 项目 id 中模糊搜索
        :type search: Optional[str]
        :param status: 只返回该状态的项目
        :return: 项目列表
        :rtype: List[Project]
        '''
        query = self.db.query(Project)

        if search and search.strip():
            search_str = search.strip()
            query = query.filter(
                or_(
                    Project.name.contains(search_str),
                    Project.client_name.contains(search_str),
                    Project.id.contains(search_str),
                )
            )
        if status is not None:
            query = query.filter(Project.status == self._parse_status(status))

        return query.order_by(Project.date_created.desc(), Project.id.desc()).all()

    # ======================================================
    # ✍️ Create / update / delete
    # ======================================================

    def create_project(
        self,
        *,
        name: str,
        client_name: str,
        client_address: str,
        project_address: str,
        phone_number: str,
        email: Optional[str] = None,
        agreement_date: Any = None,
        project_type: str = "Residential",
        number_of_floors: Any = 1,
        project_duration: Any = 0,
        estimated_budget: Any = 0,
        status: Any = ProjectStatus.NEW,
    ) -> Project:
        '''
        创建新项目，并写入 "Project Created" 时间线事件

        :param name: 项目名称
        :type name: str
        :param client_name: 客户名称
        :type client_name: str
        :param client_address: 客户地址
        :type client_address: str
        :param project_address: 施工地址
        :type project_address: str
        :param phone_number: 联系电话
        :type phone_number: str
        :param email: 邮箱（可选）
        :param agreement_date: 合同日期，date 或 ISO 字符串
        :param project_type: 项目类型
        :param number_of_floors: 楼层数（>= 0）
        :param project_duration: 工期（月，>= 0）
        :param estimated_budget: 预算（>= 0），无有效估算时用于合同金额
        :param status: 初始状态
        :return: 创建的项目
        :rtype: Project
        '''
        values = {
            "name": name,
            "client_name": client_name,
            "client_address": client_address,
            "project_address": project_address,
            "phone_number": phone_number,
        }
        for field in REQUIRED_TEXT_FIELDS:
            values[field] = self._clean_required_text(field, values[field])

        project = Project(
            id=next_id(self.db, Project, IdPrefix.PROJECT),
            date_created=date.today(),
            email=self._clean_optional_text(email),
            agreement_date=self._parse_date(agreement_date),
            project_type=self._clean_required_text("project_type", project_type),
            number_of_floors=self._non_negative_int("number_of_floors", number_of_floors),
            project_duration=self._non_negative_int("project_duration", project_duration),
            estimated_budget=self._non_negative_amount("estimated_budget", estimated_budget),
            status=self._parse_status(status),
            **values,
        )
        self.db.add(project)
        self.db.flush()

        self.append_timeline_event(
            project_id=project.id,
            title="Project Created",
            description="Project initialized in the system",
        )
        logger.info("Project created: %s (%s)", project.id, project.name)
        return project

    def update_project(self, *, project_id: str, updates: Dict[str, Any]) -> Project:
        '''
        部分更新项目字段

        规则：
        - 只允许 CLIENT_FIELDS / DETAIL_FIELDS / status
        - 状态变化追加 "Status Changed: old → new"
        - 客户信息变化追加 "Client Information Updated"
        - 其他字段变化追加 "Project Details Updated"
        - 值未变化的字段不赋值，不记事件

        :param project_id: 项目ID
        :type project_id: str
        :param updates: 字段 -> 新值
        :type updates: Dict[str, Any]
        :return: 更新后的项目
        :rtype: Project
        '''
        project = self.require_project(project_id)

        allowed = set(CLIENT_FIELDS) | set(DETAIL_FIELDS) | {"status"}
        unknown = set(updates) - allowed
        if unknown:
            raise ValidationError(f"Field(s) not editable: {', '.join(sorted(unknown))}")

        # 1️⃣ 先全部校验，再赋值，保证失败时不产生部分写入
        cleaned = {field: self._clean_field(field, value) for field, value in updates.items()}

        client_changed = False
        details_changed = False
        old_status = project.status

        for field, new_value in cleaned.items():
            if getattr(project, field) == new_value:
                continue
            setattr(project, field, new_value)
            if field in CLIENT_FIELDS:
                client_changed = True
            elif field in DETAIL_FIELDS:
                details_changed = True

        # 2️⃣ 时间线
        if project.status != old_status:
            self.append_timeline_event(
                project_id=project.id,
                title=f"Status Changed: {old_status.value} → {project.status.value}",
                description=f"Project status updated from {old_status.value} to {project.status.value}",
            )
        if client_changed:
            self.append_timeline_event(
                project_id=project.id,
                title="Client Information Updated",
                description="Client details have been modified",
            )
        if details_changed:
            self.append_timeline_event(
                project_id=project.id,
                title="Project Details Updated",
                description="Project information has been modified",
            )

        self.db.flush()
        return project

    def delete_project(self, project_id: str) -> bool:
        '''删除项目，级联删除时间线与全部估算版本'''
        project = self.require_project(project_id)

        from builddesk.models.project_estimation import ProjectEstimation, EstimationVersionCounter

        estimations = (
            self.db.query(ProjectEstimation)
            .filter(ProjectEstimation.project_id == project_id)
            .all()
        )
        for estimation in estimations:
            self.db.delete(estimation)
        counter = self.db.get(EstimationVersionCounter, project_id)
        if counter:
            self.db.delete(counter)

        self.db.delete(project)
        self.db.flush()
        logger.info("Project deleted: %s with %d estimation(s)", project_id, len(estimations))
        return True

    # ======================================================
    # 🕒 Timeline
    # ======================================================

    def append_timeline_event(
        self,
        *,
        project_id: str,
        title: str,
        status: Any = TimelineEventStatus.completed,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> TimelineEvent:
        '''
        追加一条时间线事件，并保持 project.timeline 按日期倒序

        :param project_id: 项目ID
        :type project_id: str
        :param title: 事件标题
        :type title: str
        :param status: completed / in-progress / pending
        :param description: 描述（可选）
        :param date: 事件时间，默认当前时间
        :return: 新事件
        :rtype: TimelineEvent
        '''
        project = self.require_project(project_id)
        title = self._clean_required_text("title", title)

        event = TimelineEvent(
            id=next_id(self.db, TimelineEvent, IdPrefix.TIMELINE_EVENT),
            title=title,
            date=self._parse_datetime(date) if date is not None else datetime.now(),
            status=self._parse_event_status(status),
            description=self._clean_optional_text(description),
        )
        project.timeline.append(event)
        # 同一时间的事件按插入顺序，后插入的排前面
        project.timeline.sort(key=lambda e: (e.date, sequence_of(e.id)), reverse=True)
        self.db.flush()
        return event

    def record_agreement_generated(self, *, project_id: str, agreement_name: str) -> TimelineEvent:
        return self.append_timeline_event(
            project_id=project_id,
            title="Agreement Generated",
            description=f"Project agreement document has been generated from '{agreement_name}'",
        )

    # ======================================================
    # 📊 Statistics
    # ======================================================

    def statistics(self) -> Dict[str, Any]:
        '''
        项目统计：总数 / 进行中 / 已完成 / 总预算 / 平均工期
        '''
        total = self.db.query(func.count(Project.id)).scalar() or 0
        active = (
            self.db.query(func.count(Project.id))
            .filter(Project.status.in_(ACTIVE_STATUSES))
            .scalar()
            or 0
        )
        completed = (
            self.db.query(func.count(Project.id))
            .filter(Project.status == ProjectStatus.COMPLETED)
            .scalar()
            or 0
        )
        projects = self.db.query(Project).all()
        budgets = [p.estimated_budget or Decimal("0") for p in projects]
        durations = [p.project_duration or 0 for p in projects]

        return {
            "total_projects": total,
            "active_projects": active,
            "completed_projects": completed,
            "total_value": sum(budgets, Decimal("0")),
            "average_project_duration": (sum(durations) / len(durations)) if durations else 0.0,
        }

    # ======================================================
    # 🧹 Field cleaning
    # ======================================================

    def _clean_field(self, field: str, value: Any) -> Any:
        if field == "status":
            return self._parse_status(value)
        if field == "email":
            return self._clean_optional_text(value)
        if field == "agreement_date":
            return self._parse_date(value)
        if field in ("number_of_floors", "project_duration"):
            return self._non_negative_int(field, value)
        if field == "estimated_budget":
            return self._non_negative_amount(field, value)
        return self._clean_required_text(field, value)

    @staticmethod
    def _clean_required_text(field: str, value: Any) -> str:
        if value is None or str(value).strip() == "":
            raise ValidationError(f"{field} is required", field=field)
        return str(value).strip()

    @staticmethod
    def _clean_optional_text(value: Any) -> Optional[str]:
        if value is None or str(value).strip() == "":
            return None
        return str(value).strip()

    @staticmethod
    def _non_negative_int(field: str, value: Any) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be an integer", field=field)
        if number < 0:
            raise ValidationError(f"{field} must not be negative", field=field)
        return number

    @staticmethod
    def _non_negative_amount(field: str, value: Any) -> Decimal:
        amount = to_decimal(value, field=field)
        if amount < 0:
            raise ValidationError(f"{field} must not be negative", field=field)
        return amount

    @staticmethod
    def _parse_date(value: Any) -> Optional[date]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}", field="agreement_date")

    @staticmethod
    def _parse_datetime(value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            raise ValidationError(f"Invalid datetime: {value!r}", field="date")

    @staticmethod
    def _parse_status(value: Any) -> ProjectStatus:
        if isinstance(value, ProjectStatus):
            return value
        for member in ProjectStatus:
            if str(value) in (member.value, member.name):
                return member
        raise ValidationError(
            f"Invalid project status: {value!r}. Valid values: {[m.value for m in ProjectStatus]}",
            field="status",
        )

    @staticmethod
    def _parse_event_status(value: Any) -> TimelineEventStatus:
        if isinstance(value, TimelineEventStatus):
            return value
        for member in TimelineEventStatus:
            if str(value) in (member.value, member.name):
                return member
        raise ValidationError(
            f"Invalid timeline status: {value!r}. Valid values: {[m.value for m in TimelineEventStatus]}",
            field="status",
        )
