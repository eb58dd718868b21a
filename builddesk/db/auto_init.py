"""
数据库自动初始化检查模块
在应用启动时自动检查并执行必要的初始化步骤：建表，空库时写入默认目录
"""
from sqlalchemy import inspect
from builddesk.db.session import get_engine, get_session
from builddesk.db.init_db import init_db
from builddesk.models.line_item import LineItem
from builddesk.models.agreement import Agreement
from builddesk.services.catalog_service import CatalogService
from builddesk.services.estimation_service import EstimationService
from builddesk.services.project_service import ProjectService
from builddesk.services.agreement_service import AgreementService
from builddesk.presentation.agreement_templates import DEFAULT_COMPANY_NAME
from builddesk.logger import get_logger

logger = get_logger(__name__)

# (name, category, unit, rate, description)
DEFAULT_LINE_ITEMS = [
    ("Cement (OPC 53 Grade)", "Building Materials", "Bag", 350, "High quality cement for construction"),
    ("Bricks (Red Clay)", "Building Materials", "Piece", 8, "Standard red clay bricks"),
    ("Sand (River)", "Building Materials", "Cubic Meter", 1800, "River sand for construction"),
    ("Steel Reinforcement (TMT Bars)", "Building Materials", "Kg", 65, "TMT bars for reinforcement"),
    ("Mason Labor", "Labor", "Day", 800, "Skilled mason work"),
    ("Helper Labor", "Labor", "Day", 500, "General helper labor"),
    ("Concrete (M20)", "Building Materials", "Cubic Meter", 4500, "Ready mix concrete M20 grade"),
    ("Plaster of Paris", "Building Materials", "Bag", 280, "High quality plaster for finishing"),
]

# (name, category, [(line item index, quantity, notes)])
DEFAULT_TEMPLATES = [
    ("Standard House Construction", "Residential", [
        (0, 100, "For foundation and structure"),
        (1, 5000, "Wall construction"),
        (2, 20, "Mortar and concrete"),
        (3, 2000, "Structural reinforcement"),
        (4, 30, "Masonry work"),
        (6, 15, "Foundation concrete"),
    ]),
    ("Commercial Office Space", "Commercial", [
        (0, 200, "Heavy construction"),
        (3, 5000, "Commercial grade steel"),
        (4, 60, "Skilled labor for commercial work"),
        (6, 50, "Commercial grade concrete"),
    ]),
    ("Bathroom Renovation", "Renovation", [
        (1, 200, "Wall tiles and structure"),
        (4, 5, "Tile work and plumbing"),
        (7, 10, "Wall finishing"),
    ]),
]

# (name, type)，正文使用该类型的默认模板
DEFAULT_AGREEMENTS = [
    ("Standard Construction Agreement", "Construction"),
    ("Renovation Contract", "Renovation"),
    ("Interior Design Agreement", "Interior"),
]


def check_tables_exist(engine=None) -> bool:
    """检查数据库表是否存在"""
    inspector = inspect(engine or get_engine())
    tables = inspector.get_table_names()
    return all(name in tables for name in ("line_items", "project_estimations", "id_sequences"))


def seed_catalog(db, *, company_name: str = DEFAULT_COMPANY_NAME) -> None:
    """
    写入默认单价项、估算模板和合同模板
    只在对应表为空时写入，重复调用无副作用
    """
    catalog_service = CatalogService(db)
    project_service = ProjectService(db)
    agreement_service = AgreementService(
        db,
        project_service,
        EstimationService(db, catalog_service, project_service),
        catalog_service,
        company_name=company_name,
    )

    if db.query(LineItem).count() == 0:
        line_items = [
            catalog_service.create_line_item(
                name=name,
                category=category,
                unit=unit,
                rate=rate,
                description=description,
            )
            for name, category, unit, rate, description in DEFAULT_LINE_ITEMS
        ]
        for name, category, items in DEFAULT_TEMPLATES:
            catalog_service.create_template(
                name=name,
                category=category,
                items=[
                    {"line_item_id": line_items[index].id, "quantity": quantity, "notes": notes}
                    for index, quantity, notes in items
                ],
            )
        logger.info("✅ Seeded %d line items and %d templates", len(DEFAULT_LINE_ITEMS), len(DEFAULT_TEMPLATES))

    if db.query(Agreement).count() == 0:
        for name, agreement_type in DEFAULT_AGREEMENTS:
            agreement_service.create_agreement(name=name, type=agreement_type)
        logger.info("✅ Seeded %d agreement templates", len(DEFAULT_AGREEMENTS))


def auto_init(company_name: str = DEFAULT_COMPANY_NAME):
    """
    自动初始化检查
    如果数据库未初始化，自动建表；目录为空时写入默认目录
    """
    logger.info("🔍 检查数据库初始化状态...")

    if not check_tables_exist():
        logger.info("📦 数据库表不存在，正在创建...")
        init_db()
        logger.info("✅ 数据库表创建成功")
    else:
        logger.info("✅ 数据库表已存在")

    db = get_session()
    try:
        seed_catalog(db, company_name=company_name)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("❌ 写入默认目录失败")
        raise
    finally:
        db.close()

    logger.info("🎉 数据库初始化检查完成")


if __name__ == "__main__":
    auto_init()
