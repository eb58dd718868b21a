from decimal import Decimal


def test_seed_catalog_is_idempotent(db):
    from builddesk.db.auto_init import seed_catalog
    from builddesk.models.line_item import LineItem
    from builddesk.models.agreement import Agreement
    from builddesk.services.catalog_service import CatalogService

    seed_catalog(db)
    seed_catalog(db)
    db.commit()

    assert db.query(LineItem).count() == 8
    assert db.query(Agreement).count() == 3

    catalog = CatalogService(db)
    assert [t.id for t in catalog.list_templates()] == ["ET001", "ET002", "ET003"]
    # 100*350 + 5000*8 + 20*1800 + 2000*65 + 30*800 + 15*4500
    assert catalog.template_value("ET001") == Decimal("332500")


def test_auto_init_creates_tables_and_seeds(engine):
    from builddesk.db.auto_init import auto_init, check_tables_exist
    from builddesk.db.session import get_session
    from builddesk.models.agreement import Agreement

    assert check_tables_exist(engine)
    auto_init()

    db = get_session()
    try:
        names = [a.name for a in db.query(Agreement).order_by(Agreement.id)]
        assert names == [
            "Standard Construction Agreement",
            "Renovation Contract",
            "Interior Design Agreement",
        ]
    finally:
        db.close()
