import re

import pytest

from builddesk.errors import NotFoundError, ValidationError
from builddesk.services.agreement_service import substitute_tokens

KNOWN_TOKENS = [
    "PROJECT_NAME", "CLIENT_NAME", "CLIENT_ADDRESS", "PROJECT_DURATION",
    "ESTIMATED_BUDGET", "AGREEMENT_DATE", "NUMBER_OF_FLOORS", "ESTIMATION_TABLE",
]


def _all_tokens_template():
    return " ".join("{{%s}}" % token for token in KNOWN_TOKENS)


def test_generate_replaces_every_known_token(services, catalog, project):
    agreement = services.agreements.create_agreement(
        name="Everything", type="Custom", template_content=_all_tokens_template() * 2
    )
    html = services.agreements.generate(project_id=project.id, agreement_id=agreement.id)

    for token in KNOWN_TOKENS:
        assert "{{%s}}" % token not in html
    assert "Riverside Residences" in html
    assert "2025-03-20" in html


def test_generate_uses_budget_and_fallback_table_without_estimation(services, project):
    agreement = services.agreements.create_agreement(
        name="Budget", type="Custom", template_content="₹{{ESTIMATED_BUDGET}} {{ESTIMATION_TABLE}}"
    )
    html = services.agreements.generate(project_id=project.id, agreement_id=agreement.id)

    assert html.startswith("₹45,00,000 ")
    assert "Construction Materials" in html
    assert "27,00,000" in html
    assert "Labor Charges" in html
    assert "13,50,000" in html
    assert "Other Expenses" in html
    assert "4,50,000" in html


def test_generate_uses_active_estimation(services, catalog, project):
    services.estimations.create_from_template(
        project_id=project.id, template_id=catalog.template.id, name="v1"
    )
    agreement = services.agreements.create_agreement(
        name="Estimate", type="Custom", template_content="{{ESTIMATED_BUDGET}}|{{ESTIMATION_TABLE}}"
    )
    html = services.agreements.generate(project_id=project.id, agreement_id=agreement.id)

    budget, table = html.split("|", 1)
    assert budget == "75,000"
    assert "Cement (OPC 53 Grade)" in table
    assert "Wall construction" in table
    assert "₹75,000" in table
    assert "Construction Materials" not in table


def test_generate_leaves_unknown_tokens_and_escapes_values(services, project):
    services.projects.update_project(
        project_id=project.id, updates={"client_name": "<b>{{PROJECT_NAME}}</b>"}
    )
    agreement = services.agreements.create_agreement(
        name="Odd", type="Custom", template_content="{{CLIENT_NAME}} {{SITE_ENGINEER}}"
    )
    html = services.agreements.generate(project_id=project.id, agreement_id=agreement.id)

    assert html == "&lt;b&gt;{{PROJECT_NAME}}&lt;/b&gt; {{SITE_ENGINEER}}"


def test_generate_is_read_only(services, project):
    agreement = services.agreements.create_agreement(name="Standard", type="Construction")
    before = len(project.timeline)
    services.agreements.generate(project_id=project.id, agreement_id=agreement.id)
    assert len(project.timeline) == before


def test_generate_missing_references(services, project):
    agreement = services.agreements.create_agreement(name="Standard", type="Construction")
    with pytest.raises(NotFoundError):
        services.agreements.generate(project_id="PRJ999", agreement_id=agreement.id)
    with pytest.raises(NotFoundError):
        services.agreements.generate(project_id=project.id, agreement_id="AG999")


def test_substitute_tokens_single_pass():
    assert substitute_tokens("{{A}}-{{B}}", {"A": "{{B}}", "B": "x"}) == "{{B}}-x"


def test_default_templates_per_type(services):
    for agreement_type in ["Construction", "Renovation", "Interior", "Maintenance", "Custom"]:
        agreement = services.agreements.create_agreement(name=f"{agreement_type} default", type=agreement_type)
        assert "{{ESTIMATION_TABLE}}" in agreement.template_content
        assert "Omega Builders" in agreement.template_content
        assert not re.search(r"\$company_name", agreement.template_content)


def test_agreement_crud_validation(services):
    with pytest.raises(ValidationError):
        services.agreements.create_agreement(name=" ", type="Construction")
    with pytest.raises(ValidationError):
        services.agreements.create_agreement(name="Lease", type="Lease")

    agreement = services.agreements.create_agreement(name="Draft", type="Custom", template_content="<p>x</p>")
    assert agreement.id == "AG001"
    updated = services.agreements.update_agreement(agreement_id=agreement.id, updates={"name": "Final"})
    assert updated.name == "Final"
    assert services.agreements.delete_agreement(agreement.id) is True
    with pytest.raises(NotFoundError):
        services.agreements.get_agreement(agreement.id)


def test_preview_and_printable(services, project):
    agreement = services.agreements.create_agreement(name="Standard", type="Construction")
    preview = services.agreements.preview(agreement.id)
    assert "Sample Residence" in preview["html"]
    assert preview["budget_in_words"] == "Twenty Five Lakh Only"

    page = services.agreements.render_printable(project, "<p>body</p>")
    assert "<title>Agreement - Riverside Residences</title>" in page
    assert "<p>body</p>" in page
