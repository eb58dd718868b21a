import os

# 测试只输出到控制台，数据库用内存库
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from builddesk.db.session import bind_engine, dispose_engine, get_session
from builddesk.db.init_db import init_db


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    bind_engine(engine)
    yield engine
    dispose_engine()


@pytest.fixture
def db(engine):
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def services(db):
    from builddesk.services.catalog_service import CatalogService
    from builddesk.services.project_service import ProjectService
    from builddesk.services.estimation_service import EstimationService
    from builddesk.services.agreement_service import AgreementService

    catalog = CatalogService(db)
    projects = ProjectService(db)
    estimations = EstimationService(db, catalog, projects)
    agreements = AgreementService(db, projects, estimations, catalog)
    return SimpleNamespace(catalog=catalog, projects=projects, estimations=estimations, agreements=agreements)


@pytest.fixture
def catalog(services, db):
    """
    LI001 Cement 350/Bag, LI002 Bricks 8/Piece
    ET001 = [LI001 x 100, LI002 x 5000]
    """
    cement = services.catalog.create_line_item(name="Cement (OPC 53 Grade)", unit="Bag", rate=350, category="Building Materials")
    bricks = services.catalog.create_line_item(name="Bricks (Red Clay)", unit="Piece", rate=8, category="Building Materials")
    template = services.catalog.create_template(
        name="Standard House Construction",
        category="Residential",
        items=[
            {"line_item_id": cement.id, "quantity": 100, "notes": "For foundation and structure"},
            {"line_item_id": bricks.id, "quantity": 5000, "notes": "Wall construction"},
        ],
    )
    db.commit()
    return SimpleNamespace(cement=cement, bricks=bricks, template=template)


@pytest.fixture
def project(services, db):
    project = services.projects.create_project(
        name="Riverside Residences",
        client_name="Rahul Sharma",
        client_address="123 River View Road, Mumbai",
        project_address="Plot 12, River View Road, Mumbai",
        phone_number="+91 98200 00001",
        agreement_date="2025-03-20",
        number_of_floors=3,
        project_duration=8,
        estimated_budget=4500000,
    )
    db.commit()
    return project


@pytest.fixture
def app(engine):
    from builddesk.app_factory import create_app

    app = create_app({"TESTING": True, "COMPANY_NAME": "Omega Builders"})
    return app


@pytest.fixture
def client(app):
    return app.test_client()
