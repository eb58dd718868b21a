# seed_demo.py
# 写入演示项目脚本（需要先运行 run.py 或 auto_init 建好目录）
from builddesk.db.session import get_session
from builddesk.db.auto_init import auto_init
from builddesk.services.catalog_service import CatalogService
from builddesk.services.project_service import ProjectService
from builddesk.services.estimation_service import EstimationService

demo_projects = [
    {
        "name": "Riverside Residences",
        "client_name": "Rahul Sharma",
        "client_address": "123 River View Road, Mumbai",
        "project_address": "Plot 12, River View Road, Mumbai",
        "phone_number": "+91 98200 00001",
        "agreement_date": "2025-03-20",
        "project_type": "Residential",
        "number_of_floors": 3,
        "project_duration": 8,
        "estimated_budget": 4500000,
        "status": "Under Construction",
    },
    {
        "name": "Greenfield Mall",
        "client_name": "Metro Developers",
        "client_address": "456 Business Park, Chennai",
        "project_address": "Survey No. 88, OMR, Chennai",
        "phone_number": "+91 98400 00002",
        "agreement_date": "2025-02-15",
        "project_type": "Commercial",
        "number_of_floors": 4,
        "project_duration": 12,
        "estimated_budget": 8500000,
        "status": "New",
    },
    {
        "name": "Sunset Apartments Renovation",
        "client_name": "Housing Society Ltd",
        "client_address": "789 Sunset Avenue, Bangalore",
        "project_address": "789 Sunset Avenue, Bangalore",
        "phone_number": "+91 98450 00003",
        "agreement_date": "2025-01-10",
        "project_type": "Renovation",
        "number_of_floors": 5,
        "project_duration": 6,
        "estimated_budget": 2500000,
        "status": "Completed",
    },
    {
        "name": "Tech Park Office Building",
        "client_name": "TechCorp Solutions",
        "client_address": "321 IT Park, Hyderabad",
        "project_address": "Block C, HITEC City, Hyderabad",
        "phone_number": "+91 98490 00004",
        "agreement_date": "2025-04-05",
        "project_type": "New Construction",
        "number_of_floors": 6,
        "project_duration": 10,
        "estimated_budget": 6500000,
        "status": "New",
    },
]


def create_demo_projects():
    """创建演示项目，第一个项目附带一个基于模板的估算"""
    db = get_session()
    try:
        catalog_service = CatalogService(db)
        project_service = ProjectService(db)
        estimation_service = EstimationService(db, catalog_service, project_service)

        projects = [project_service.create_project(**data) for data in demo_projects]

        templates = catalog_service.list_templates(category="Residential")
        if templates:
            estimation_service.create_from_template(
                project_id=projects[0].id,
                template_id=templates[0].id,
                name=f"{templates[0].name} - Version 1",
            )

        db.commit()
        print(f"✅ 演示项目创建成功: {', '.join(p.id for p in projects)}")

    except Exception as e:
        db.rollback()
        print(f"❌ 创建失败: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    from builddesk.app_factory import create_app

    create_app()
    auto_init()
    create_demo_projects()
