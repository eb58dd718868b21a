import re
from typing import Any, Dict, List, Optional
from datetime import date
from decimal import Decimal

from markupsafe import escape
from sqlalchemy.orm import Session

from builddesk.models.agreement import Agreement
from builddesk.models.project import Project
from builddesk.models.project_estimation import ProjectEstimation
from builddesk.db.enums import AgreementType, IdPrefix
from builddesk.db.id_sequence import next_id
from builddesk.errors import NotFoundError, ValidationError
from builddesk.presentation.agreement_templates import DEFAULT_COMPANY_NAME, default_template
from builddesk.presentation.formatting import format_inr, number_to_words
from builddesk.presentation.html import render, trusted
from builddesk.services.catalog_service import CatalogService
from builddesk.services.estimation_service import EstimationService
from builddesk.services.project_service import ProjectService
from builddesk.logger import get_logger

logger = get_logger(__name__)

TOKEN_PATTERN = re.compile(r"\{\{([A-Z_]+)\}\}")

# 无有效估算时按预算拆分
FALLBACK_BREAKDOWN = (
    ("Construction Materials", Decimal("0.6")),
    ("Labor Charges", Decimal("0.3")),
    ("Other Expenses", Decimal("0.1")),
)

AGREEMENT_EDITABLE_FIELDS = {"name", "type", "template_content"}


def substitute_tokens(content: str, values: Dict[str, str]) -> str:
    '''
    单次扫描替换 {{TOKEN}}

    - 替换结果不会被再次扫描，值里出现 "{{...}}" 也原样保留
    - 未知 token 原样保留，模板里没有的 token 不报错
    '''
    def _replace(match: re.Match) -> str:
        return values.get(match.group(1), match.group(0))

    return TOKEN_PATTERN.sub(_replace, content)


class AgreementService:
    """
    Agreement Merge Engine.

    Agreement CRUD plus read-only generation of contract HTML for a project.
    generate() never writes; the caller records the "Agreement Generated"
    timeline event after a successful merge.
    """

    def __init__(
        self,
        db: Session,
        project_service: ProjectService,
        estimation_service: EstimationService,
        catalog_service: CatalogService,
        *,
        company_name: str = DEFAULT_COMPANY_NAME,
    ):
        self.db = db
        self.project_service = project_service
        self.estimation_service = estimation_service
        self.catalog_service = catalog_service
        self.company_name = company_name or DEFAULT_COMPANY_NAME

    # ======================================================
    # 📄 Agreement CRUD
    # ======================================================

    def list_agreements(self, *, agreement_type: Optional[str] = None) -> List[Agreement]:
        query = self.db.query(Agreement)
        if agreement_type:
            query = query.filter(Agreement.type == agreement_type)
        return query.order_by(Agreement.id).all()

    def get_agreement(self, agreement_id: str) -> Agreement:
        agreement = self.db.get(Agreement, agreement_id)
        if not agreement:
            raise NotFoundError.for_entity("Agreement", agreement_id)
        return agreement

    def create_agreement(
        self,
        *,
        name: str,
        type: str = AgreementType.CONSTRUCTION.value,
        template_content: Optional[str] = None,
    ) -> Agreement:
        '''
        新建合同模板

        :param name: 名称，不能为空
        :type name: str
        :param type: Construction / Renovation / Interior / Maintenance / Custom
        :type type: str
        :param template_content: HTML 正文；为空时使用该类型的默认模板
        :type template_content: Optional[str]
        :return: 新合同模板
        :rtype: Agreement
        '''
        name = self._required_name(name)
        agreement_type = self._parse_type(type)
        if not template_content or not template_content.strip():
            template_content = default_template(agreement_type, self.company_name)

        agreement = Agreement(
            id=next_id(self.db, Agreement, IdPrefix.AGREEMENT),
            name=name,
            type=agreement_type,
            last_modified=date.today(),
            template_content=template_content,
        )
        self.db.add(agreement)
        self.db.flush()
        logger.info("Agreement created: %s (%s)", agreement.id, agreement.type)
        return agreement

    def update_agreement(self, *, agreement_id: str, updates: Dict[str, Any]) -> Agreement:
        agreement = self.get_agreement(agreement_id)
        unknown = set(updates) - AGREEMENT_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Field(s) not editable: {', '.join(sorted(unknown))}")

        name = self._required_name(updates["name"]) if "name" in updates else agreement.name
        agreement_type = self._parse_type(updates["type"]) if "type" in updates else agreement.type
        content = agreement.template_content
        if "template_content" in updates:
            if updates["template_content"] is None:
                raise ValidationError("template_content must not be null", field="template_content")
            content = str(updates["template_content"])

        agreement.name = name
        agreement.type = agreement_type
        agreement.template_content = content
        agreement.last_modified = date.today()
        self.db.flush()
        return agreement

    def delete_agreement(self, agreement_id: str) -> bool:
        agreement = self.get_agreement(agreement_id)
        self.db.delete(agreement)
        self.db.flush()
        return True

    # ======================================================
    # 🧩 Generation
    # ======================================================

    def generate(self, *, project_id: str, agreement_id: str) -> str:
        '''
        用项目数据填充合同模板

        规则：
        - 金额取有效估算的 total_amount，没有有效估算时取项目预算
        - ESTIMATION_TABLE：有效估算的明细表，或 60/30/10 预算拆分表
        - 文本值做 HTML 转义，表格本身是受信任的 HTML
        - 只读，不写时间线

        :param project_id: 项目ID
        :type project_id: str
        :param agreement_id: 合同模板ID
        :type agreement_id: str
        :return: 生成的 HTML
        :rtype: str
        '''
        project = self.project_service.require_project(project_id)
        agreement = self.get_agreement(agreement_id)
        estimation = self.estimation_service.get_active(project_id)

        money = Decimal(estimation.total_amount) if estimation else Decimal(project.estimated_budget or 0)
        values = self._token_values(
            project,
            money=money,
            table=self.build_estimation_table(project, estimation),
        )
        html = substitute_tokens(agreement.template_content, values)

        logger.info(
            "Agreement generated: %s for project %s (estimation=%s)",
            agreement.id,
            project.id,
            estimation.id if estimation else None,
        )
        return html

    def build_estimation_table(self, project: Project, estimation: Optional[ProjectEstimation]) -> str:
        '''
        有效估算 -> 每个条目一行 + 合计行
        无有效估算 -> Construction Materials / Labor Charges / Other Expenses 三行 + 合计行
        '''
        if estimation is None:
            budget = Decimal(project.estimated_budget or 0)
            rows = [
                {"name": label, "amount": format_inr(budget * share)}
                for label, share in FALLBACK_BREAKDOWN
            ]
            return render("fallback_table.html", rows=rows, total=format_inr(budget))

        rows = []
        for item in estimation.items:
            line_item = self.catalog_service.get_line_item(item.line_item_id)
            rows.append({
                "name": line_item.name if line_item else "Unknown Item",
                "notes": item.notes,
                "quantity": format_inr(item.quantity),
                "unit": line_item.unit if line_item else "-",
                "rate": format_inr(item.rate),
                "amount": format_inr(item.amount),
            })
        return render("estimation_table.html", rows=rows, total=format_inr(estimation.total_amount))

    def preview(self, agreement_id: str) -> Dict[str, str]:
        '''
        用示例项目渲染合同模板（预算拆分表），附带预算的英文大写
        '''
        agreement = self.get_agreement(agreement_id)
        sample = self._sample_project()
        values = self._token_values(
            sample,
            money=sample.estimated_budget,
            table=self.build_estimation_table(sample, None),
        )
        return {
            "html": substitute_tokens(agreement.template_content, values),
            "budget_in_words": number_to_words(sample.estimated_budget),
        }

    def render_printable(self, project: Project, body_html: str) -> str:
        '''生成的合同放进打印页面（标题 + 样式 + 打印按钮）'''
        return render("agreement_print.html", project_name=project.name, body=trusted(body_html))

    # ======================================================
    # 🔧 Internal
    # ======================================================

    @staticmethod
    def _token_values(project: Project, *, money: Decimal, table: str) -> Dict[str, str]:
        def text(value: Any) -> str:
            return str(escape("" if value is None else str(value)))

        return {
            "PROJECT_NAME": text(project.name),
            "CLIENT_NAME": text(project.client_name),
            "CLIENT_ADDRESS": text(project.client_address),
            "PROJECT_ADDRESS": text(project.project_address),
            "PROJECT_TYPE": text(project.project_type),
            "PROJECT_DURATION": text(project.project_duration),
            "NUMBER_OF_FLOORS": text(project.number_of_floors),
            "AGREEMENT_DATE": text(project.agreement_date.isoformat() if project.agreement_date else ""),
            "ESTIMATED_BUDGET": format_inr(money),
            "ESTIMATION_TABLE": table,
        }

    @staticmethod
    def _sample_project() -> Project:
        # 不加入 session，只用于预览
        return Project(
            id="PRJ000",
            name="Sample Residence",
            client_name="Sample Client",
            client_address="123 Sample Street, Mumbai",
            project_address="Plot 7, Sample Nagar, Mumbai",
            phone_number="+91 98765 43210",
            agreement_date=date.today(),
            project_type="Residential",
            number_of_floors=2,
            project_duration=6,
            estimated_budget=Decimal("2500000"),
        )

    @staticmethod
    def _parse_type(value: Any) -> str:
        if isinstance(value, AgreementType):
            return value.value
        for member in AgreementType:
            if str(value) in (member.value, member.name):
                return member.value
        raise ValidationError(
            f"Invalid agreement type: {value!r}. Valid values: {[m.value for m in AgreementType]}",
            field="type",
        )

    @staticmethod
    def _required_name(name: Any) -> str:
        if name is None or str(name).strip() == "":
            raise ValidationError("name is required", field="name")
        return str(name).strip()
