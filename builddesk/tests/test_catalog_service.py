from decimal import Decimal

import pytest

from builddesk.errors import NotFoundError, ValidationError


def test_line_item_ids_are_sequential(services, catalog):
    assert catalog.cement.id == "LI001"
    assert catalog.bricks.id == "LI002"
    sand = services.catalog.create_line_item(name="Sand (River)", unit="Cubic Meter", rate=1800)
    assert sand.id == "LI003"
    assert sand.category == "General"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "", "unit": "Bag", "rate": 10},
        {"name": "Cement", "unit": "  ", "rate": 10},
        {"name": "Cement", "unit": "Bag", "rate": 0},
        {"name": "Cement", "unit": "Bag", "rate": -5},
        {"name": "Cement", "unit": "Bag", "rate": "abc"},
    ],
)
def test_create_line_item_validation(services, kwargs):
    with pytest.raises(ValidationError):
        services.catalog.create_line_item(**kwargs)


def test_update_line_item(services, catalog):
    updated = services.catalog.update_line_item(
        line_item_id=catalog.cement.id,
        updates={"rate": "375.5", "description": "Price revised"},
    )
    assert updated.rate == Decimal("375.50")
    assert updated.description == "Price revised"

    with pytest.raises(ValidationError):
        services.catalog.update_line_item(line_item_id=catalog.cement.id, updates={"id": "LI999"})
    with pytest.raises(NotFoundError):
        services.catalog.update_line_item(line_item_id="LI999", updates={"rate": 1})


def test_template_validation(services, catalog):
    with pytest.raises(ValidationError):
        services.catalog.create_template(
            name="Bad", category="Residential",
            items=[{"line_item_id": catalog.cement.id, "quantity": 0}],
        )
    with pytest.raises(NotFoundError):
        services.catalog.create_template(
            name="Bad", category="Residential",
            items=[{"line_item_id": "LI999", "quantity": 1}],
        )
    with pytest.raises(ValidationError):
        services.catalog.create_template(name="", category="Residential", items=[])


def test_template_items_count_and_replacement(services, catalog):
    template = catalog.template
    assert template.items_count == 2

    updated = services.catalog.update_template(
        template_id=template.id,
        updates={"items": [{"line_item_id": catalog.bricks.id, "quantity": 200}]},
    )
    assert updated.items_count == 1
    assert updated.items[0].line_item_id == catalog.bricks.id


def test_template_value_uses_current_rates(services, catalog):
    assert services.catalog.template_value(catalog.template.id) == Decimal("75000")

    services.catalog.update_line_item(line_item_id=catalog.bricks.id, updates={"rate": 10})
    assert services.catalog.template_value(catalog.template.id) == Decimal("85000")

    services.catalog.delete_line_item(catalog.cement.id)
    assert services.catalog.template_value(catalog.template.id) == Decimal("50000")


def test_deleting_template_keeps_estimation_reference(services, catalog, project):
    estimation = services.estimations.create_from_template(
        project_id=project.id, template_id=catalog.template.id, name="v1"
    )
    services.catalog.delete_template(catalog.template.id)

    assert services.catalog.get_template(catalog.template.id) is None
    assert services.estimations.get(estimation.id).template_id == catalog.template.id
