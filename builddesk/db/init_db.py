from sqlalchemy.orm import Session

from builddesk.db.session import get_engine
from builddesk.db.base import Base
from builddesk.db.enums import IdPrefix
from builddesk.db.id_sequence import ensure_sequence
#-------------------导入所有表-----------------------
from builddesk.models.id_sequence import IdSequence  # noqa: F401
from builddesk.models.line_item import LineItem
from builddesk.models.estimation_template import EstimationTemplate, EstimationTemplateItem
from builddesk.models.project import Project, TimelineEvent
from builddesk.models.project_estimation import (
    ProjectEstimation,
    ProjectEstimationItem,
    EstimationVersionCounter,  # noqa: F401
)
from builddesk.models.agreement import Agreement

# 每个使用序号 id 的表
ID_SEQUENCES = [
    (LineItem, IdPrefix.LINE_ITEM),
    (EstimationTemplate, IdPrefix.TEMPLATE),
    (EstimationTemplateItem, IdPrefix.TEMPLATE_ITEM),
    (Project, IdPrefix.PROJECT),
    (TimelineEvent, IdPrefix.TIMELINE_EVENT),
    (ProjectEstimation, IdPrefix.ESTIMATION),
    (ProjectEstimationItem, IdPrefix.ESTIMATION_ITEM),
    (Agreement, IdPrefix.AGREEMENT),
]


def init_db(engine=None):
    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)

    # 建表时一次性补齐序号行，老库从现有最大 id 接着编号
    with Session(bind=engine) as db:
        for model, prefix in ID_SEQUENCES:
            ensure_sequence(db, model, prefix)
        db.commit()
