import threading
import time
from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from builddesk.db.enums import IdPrefix
from builddesk.db.id_sequence import next_id, next_ids
from builddesk.db.init_db import init_db
from builddesk.models.id_sequence import IdSequence
from builddesk.models.line_item import LineItem
from builddesk.services.catalog_service import CatalogService
from builddesk.services.estimation_service import EstimationService
from builddesk.services.project_service import ProjectService


def _services(db):
    catalog = CatalogService(db)
    projects = ProjectService(db)
    return SimpleNamespace(
        catalog=catalog,
        projects=projects,
        estimations=EstimationService(db, catalog, projects),
    )


def test_ids_are_not_reused_after_delete(db):
    catalog = CatalogService(db)
    first = catalog.create_line_item(name="Cement", unit="Bag", rate=350)
    second = catalog.create_line_item(name="Sand", unit="Ton", rate=1800)
    catalog.delete_line_item(second.id)

    third = catalog.create_line_item(name="Steel", unit="Kg", rate=65)
    assert (first.id, second.id, third.id) == ("LI001", "LI002", "LI003")


def test_sequence_starts_after_existing_rows(db):
    db.add(LineItem(id="LI041", name="Legacy gravel", category="General", unit="Ton", rate=900))
    db.query(IdSequence).filter(IdSequence.prefix == IdPrefix.LINE_ITEM.value).delete()
    db.flush()

    assert next_id(db, LineItem, IdPrefix.LINE_ITEM) == "LI042"
    assert next_ids(db, LineItem, IdPrefix.LINE_ITEM, 2) == ["LI043", "LI044"]
    assert next_ids(db, LineItem, IdPrefix.LINE_ITEM, 0) == []


def test_concurrent_writers_on_different_projects_get_distinct_ids(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'builddesk.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with SessionLocal() as setup:
        s = _services(setup)
        cement = s.catalog.create_line_item(name="Cement (OPC 53 Grade)", unit="Bag", rate=350)
        bricks = s.catalog.create_line_item(name="Bricks (Red Clay)", unit="Piece", rate=8)
        template = s.catalog.create_template(
            name="Standard House Construction",
            category="Residential",
            items=[
                {"line_item_id": cement.id, "quantity": 100},
                {"line_item_id": bricks.id, "quantity": 5000},
            ],
        )
        projects = [
            s.projects.create_project(
                name=name,
                client_name="Client",
                client_address="Address",
                project_address="Site",
                phone_number="+91 98200 00001",
            )
            for name in ("Riverside Residences", "Greenfield Mall")
        ]
        setup.commit()
        template_id = template.id
        first_id, second_id = [p.id for p in projects]

    session_a = SessionLocal()
    session_b = SessionLocal()
    created = {}
    errors = []

    def write_second_project():
        try:
            created["b"] = _services(session_b).estimations.create_from_template(
                project_id=second_id, template_id=template_id, name="B"
            )
            session_b.commit()
        except Exception as exc:
            session_b.rollback()
            errors.append(exc)

    try:
        # A 已写入但未提交时，B 在另一个项目上开始写
        created["a"] = _services(session_a).estimations.create_from_template(
            project_id=first_id, template_id=template_id, name="A"
        )
        worker = threading.Thread(target=write_second_project)
        worker.start()
        time.sleep(0.5)
        session_a.commit()
        worker.join(timeout=30)
    finally:
        session_a.close()
        session_b.close()

    assert errors == []
    a, b = created["a"], created["b"]
    assert a.id != b.id
    assert not {i.id for i in a.items} & {i.id for i in b.items}

    with SessionLocal() as check:
        timeline_ids = [
            e.id
            for project_id in (first_id, second_id)
            for e in ProjectService(check).require_project(project_id).timeline
        ]
        assert len(timeline_ids) == len(set(timeline_ids)) == 4
    engine.dispose()
