from typing import Any, Dict, List, Optional
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from builddesk.models.line_item import LineItem
from builddesk.models.estimation_template import EstimationTemplate, EstimationTemplateItem
from builddesk.db.enums import IdPrefix
from builddesk.db.id_sequence import next_id, next_ids
from builddesk.errors import NotFoundError, ValidationError
from builddesk.services.amounts import quantity_of, rate_of, line_amount, sum_amounts
from builddesk.logger import get_logger

logger = get_logger(__name__)

LINE_ITEM_EDITABLE_FIELDS = {"name", "category", "unit", "rate", "description"}
TEMPLATE_EDITABLE_FIELDS = {"name", "category", "items"}


class CatalogService:
    """
    Catalog Store: line items (current prices) and estimation templates.

    Responsibilities:
    - identity lookup for the estimation / agreement services
    - write-time validation (rate > 0, name / unit non-empty, quantity > 0)

    No pricing or versioning logic lives here.
    """

    def __init__(self, db: Session):
        self.db = db

    # ======================================================
    # 🧱 Line items
    # ======================================================

    def get_line_item(self, line_item_id: str) -> Optional[LineItem]:
        return self.db.get(LineItem, line_item_id)

    def require_line_item(self, line_item_id: str) -> LineItem:
        item = self.get_line_item(line_item_id)
        if not item:
            raise NotFoundError.for_entity("LineItem", line_item_id)
        return item

    def list_line_items(self, *, category: Optional[str] = None) -> List[LineItem]:
        query = self.db.query(LineItem)
        if category:
            query = query.filter(LineItem.category == category)
        return query.order_by(LineItem.id).all()

    def create_line_item(
        self,
        *,
        name: str,
        unit: str,
        rate: Any,
        category: str = "General",
        description: Optional[str] = None,
    ) -> LineItem:
        '''
        新建目录单价项

        :param name: 名称，不能为空
        :type name: str
        :param unit: 单位，不能为空
        :type unit: str
        :param rate: 当前单价，必须 > 0
        :param category: 分类
        :type category: str
        :param description: 描述（可选）
        :return: 新建的 LineItem
        :rtype: LineItem
        '''
        item = LineItem(
            id=next_id(self.db, LineItem, IdPrefix.LINE_ITEM),
            name=self._required_text("name", name),
            unit=self._required_text("unit", unit),
            rate=rate_of(rate, allow_zero=False),
            category=self._required_text("category", category or "General"),
            description=self._optional_text(description),
        )
        self.db.add(item)
        self.db.flush()
        logger.info("LineItem created: %s (%s @ %s/%s)", item.id, item.name, item.rate, item.unit)
        return item

    def update_line_item(self, *, line_item_id: str, updates: Dict[str, Any]) -> LineItem:
        '''
        更新单价项。已生成的估算不受影响（估算保存的是创建时的单价快照）
        '''
        item = self.require_line_item(line_item_id)
        self._reject_unknown_fields(updates, LINE_ITEM_EDITABLE_FIELDS)

        cleaned = {}
        for field, value in updates.items():
            if field == "rate":
                cleaned[field] = rate_of(value, allow_zero=False)
            elif field == "description":
                cleaned[field] = self._optional_text(value)
            else:
                cleaned[field] = self._required_text(field, value)

        for field, value in cleaned.items():
            setattr(item, field, value)

        self.db.flush()
        return item

    def delete_line_item(self, line_item_id: str) -> bool:
        item = self.require_line_item(line_item_id)
        still_referenced = (
            self.db.query(EstimationTemplateItem)
            .filter(EstimationTemplateItem.line_item_id == line_item_id)
            .count()
        )
        if still_referenced:
            logger.warning(
                "LineItem %s deleted while referenced by %d template item(s)",
                line_item_id,
                still_referenced,
            )
        self.db.delete(item)
        self.db.flush()
        return True

    # ======================================================
    # 📋 Estimation templates
    # ======================================================

    def get_template(self, template_id: str) -> Optional[EstimationTemplate]:
        return self.db.get(EstimationTemplate, template_id)

    def require_template(self, template_id: str) -> EstimationTemplate:
        template = self.get_template(template_id)
        if not template:
            raise NotFoundError.for_entity("EstimationTemplate", template_id)
        return template

    def list_templates(self, *, category: Optional[str] = None) -> List[EstimationTemplate]:
        query = self.db.query(EstimationTemplate)
        if category:
            query = query.filter(EstimationTemplate.category == category)
        return query.order_by(EstimationTemplate.id).all()

    def create_template(
        self,
        *,
        name: str,
        category: str,
        items: List[Dict[str, Any]],
    ) -> EstimationTemplate:
        '''
        新建估算模板

        :param name: 模板名称，不能为空
        :type name: str
        :param category: 模板分类
        :type category: str
        :param items: [{"line_item_id", "quantity", "notes"?}, ...]，quantity 必须 > 0，
                      line_item_id 必须在目录中存在
        :type items: List[Dict[str, Any]]
        :return: 新建的模板
        :rtype: EstimationTemplate
        '''
        template = EstimationTemplate(
            id=next_id(self.db, EstimationTemplate, IdPrefix.TEMPLATE),
            name=self._required_text("name", name),
            category=self._required_text("category", category or "General"),
            last_modified=date.today(),
        )
        template.items = self._build_template_items(items)
        template.items_count = len(template.items)

        self.db.add(template)
        self.db.flush()
        logger.info("EstimationTemplate created: %s (%d items)", template.id, template.items_count)
        return template

    def update_template(self, *, template_id: str, updates: Dict[str, Any]) -> EstimationTemplate:
        '''
        更新模板；items 给出时整体替换，items_count 重新计算
        '''
        template = self.require_template(template_id)
        self._reject_unknown_fields(updates, TEMPLATE_EDITABLE_FIELDS)

        name = self._required_text("name", updates["name"]) if "name" in updates else None
        category = self._required_text("category", updates["category"]) if "category" in updates else None
        new_items = self._build_template_items(updates["items"]) if "items" in updates else None

        if name is not None:
            template.name = name
        if category is not None:
            template.category = category
        if new_items is not None:
            template.items = new_items
            template.items_count = len(new_items)
        template.last_modified = date.today()

        self.db.flush()
        return template

    def delete_template(self, template_id: str) -> bool:
        template = self.require_template(template_id)
        self.db.delete(template)
        self.db.flush()
        return True

    def template_value(self, template_id: str) -> Decimal:
        '''
        模板按当前单价估值：sum(quantity * 当前 rate)，目录中已删除的 line item 计 0
        '''
        template = self.require_template(template_id)
        amounts = []
        for t_item in template.items:
            line_item = self.get_line_item(t_item.line_item_id)
            rate = line_item.rate if line_item else Decimal("0")
            amounts.append(line_amount(t_item.quantity, rate))
        return sum_amounts(amounts)

    # ======================================================
    # 🧹 Helpers
    # ======================================================

    def _build_template_items(self, items: Any) -> List[EstimationTemplateItem]:
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ValidationError("items must be a list", field="items")

        # 一次性申请 id，避免同一批次内重复
        ids = next_ids(self.db, EstimationTemplateItem, IdPrefix.TEMPLATE_ITEM, len(items)) if items else []
        built = []
        for position, (item_id, raw) in enumerate(zip(ids, items)):
            if not isinstance(raw, dict):
                raise ValidationError("each template item must be an object", field="items")
            line_item_id = self._required_text("line_item_id", raw.get("line_item_id"))
            self.require_line_item(line_item_id)
            built.append(
                EstimationTemplateItem(
                    id=item_id,
                    line_item_id=line_item_id,
                    quantity=quantity_of(raw.get("quantity"), allow_zero=False),
                    notes=self._optional_text(raw.get("notes")),
                    position=position,
                )
            )
        return built

    @staticmethod
    def _reject_unknown_fields(updates: Dict[str, Any], allowed: set) -> None:
        unknown = set(updates) - allowed
        if unknown:
            raise ValidationError(f"Field(s) not editable: {', '.join(sorted(unknown))}")

    @staticmethod
    def _required_text(field: str, value: Any) -> str:
        if value is None or str(value).strip() == "":
            raise ValidationError(f"{field} is required", field=field)
        return str(value).strip()

    @staticmethod
    def _optional_text(value: Any) -> Optional[str]:
        if value is None or str(value).strip() == "":
            return None
        return str(value).strip()
