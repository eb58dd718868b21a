# builddesk/presentation/agreement_templates.py
"""
Built-in agreement bodies, one per agreement type.
Used when an agreement is created without content.
"""
from string import Template

from markupsafe import escape

DEFAULT_COMPANY_NAME = "Omega Builders"

_HEADER_STYLE = "text-align: center; color: #2563eb; border-bottom: 2px solid #2563eb; padding-bottom: 10px;"
_SECTION_STYLE = "color: #1e40af; margin-top: 30px;"

_CONSTRUCTION = Template(f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto;">
  <h1 style="{_HEADER_STYLE}">CONSTRUCTION AGREEMENT</h1>

  <div style="margin: 30px 0;">
    <p><strong>Project Name:</strong> {{{{PROJECT_NAME}}}}</p>
    <p><strong>Client:</strong> {{{{CLIENT_NAME}}}}</p>
    <p><strong>Address:</strong> {{{{CLIENT_ADDRESS}}}}</p>
    <p><strong>Site Address:</strong> {{{{PROJECT_ADDRESS}}}}</p>
    <p><strong>Agreement Date:</strong> {{{{AGREEMENT_DATE}}}}</p>
    <p><strong>Project Type:</strong> {{{{PROJECT_TYPE}}}}</p>
    <p><strong>Number of Floors:</strong> {{{{NUMBER_OF_FLOORS}}}}</p>
    <p><strong>Project Duration:</strong> {{{{PROJECT_DURATION}}}} months</p>
    <p><strong>Estimated Budget:</strong> ₹{{{{ESTIMATED_BUDGET}}}}</p>
  </div>

  <h2 style="{_SECTION_STYLE}">Terms and Conditions</h2>
  <ol>
    <li>The contractor agrees to complete the construction work as per the specifications outlined in this agreement.</li>
    <li>Payment will be made in installments as per the agreed schedule.</li>
    <li>Any changes to the original plan must be approved by both parties in writing.</li>
    <li>The project will be completed within {{{{PROJECT_DURATION}}}} months from the commencement date.</li>
    <li>All materials used will be of standard quality and as per approved specifications.</li>
    <li>The contractor will obtain all necessary permits and approvals.</li>
  </ol>

  <h2 style="{_SECTION_STYLE}">Work Estimation Details</h2>
  <div>
    {{{{ESTIMATION_TABLE}}}}
  </div>

  <h2 style="{_SECTION_STYLE}">Payment Terms</h2>
  <ul>
    <li>20% advance payment upon signing this agreement</li>
    <li>30% upon completion of foundation work</li>
    <li>30% upon completion of structure</li>
    <li>20% upon final completion and handover</li>
  </ul>

  <div class="signatures">
    <div>
      <p><strong>Contractor</strong></p>
      <p>$company_name</p>
      <p>Date: ___________</p>
    </div>
    <div>
      <p><strong>Client</strong></p>
      <p>{{{{CLIENT_NAME}}}}</p>
      <p>Date: ___________</p>
    </div>
  </div>
</div>
""")

_RENOVATION = Template(f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto;">
  <h1 style="{_HEADER_STYLE}">RENOVATION CONTRACT</h1>

  <div style="margin: 30px 0;">
    <p><strong>Project:</strong> {{{{PROJECT_NAME}}}}</p>
    <p><strong>Client:</strong> {{{{CLIENT_NAME}}}}</p>
    <p><strong>Property Address:</strong> {{{{CLIENT_ADDRESS}}}}</p>
    <p><strong>Agreement Date:</strong> {{{{AGREEMENT_DATE}}}}</p>
  </div>

  <h2 style="{_SECTION_STYLE}">Renovation Details</h2>
  <p>This contract covers the renovation of {{{{NUMBER_OF_FLOORS}}}} floors as specified.</p>
  <p><strong>Estimated Duration:</strong> {{{{PROJECT_DURATION}}}} months</p>
  <p><strong>Budget:</strong> ₹{{{{ESTIMATED_BUDGET}}}}</p>

  <h2 style="{_SECTION_STYLE}">Work Estimation</h2>
  <div>
    {{{{ESTIMATION_TABLE}}}}
  </div>

  <h2 style="{_SECTION_STYLE}">Renovation Terms</h2>
  <ol>
    <li>All existing structures will be carefully assessed before renovation begins.</li>
    <li>Client will be notified of any additional work required during renovation.</li>
    <li>All debris and waste materials will be properly disposed of.</li>
    <li>Work will be completed in phases to minimize disruption.</li>
  </ol>
  <p>Contractor: $company_name</p>
</div>
""")

_INTERIOR = Template(f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto;">
  <h1 style="{_HEADER_STYLE}">INTERIOR DESIGN AGREEMENT</h1>

  <div style="margin: 30px 0;">
    <p><strong>Project:</strong> {{{{PROJECT_NAME}}}}</p>
    <p><strong>Client:</strong> {{{{CLIENT_NAME}}}}</p>
    <p><strong>Address:</strong> {{{{CLIENT_ADDRESS}}}}</p>
  </div>

  <h2 style="{_SECTION_STYLE}">Interior Work Scope</h2>
  <p>Complete interior design and execution for the specified property.</p>
  <p><strong>Duration:</strong> {{{{PROJECT_DURATION}}}} months</p>
  <p><strong>Budget:</strong> ₹{{{{ESTIMATED_BUDGET}}}}</p>

  <div>
    {{{{ESTIMATION_TABLE}}}}
  </div>
  <p>Contractor: $company_name</p>
</div>
""")

_MAINTENANCE = Template(f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto;">
  <h1 style="{_HEADER_STYLE}">MAINTENANCE CONTRACT</h1>

  <div style="margin: 30px 0;">
    <p><strong>Property:</strong> {{{{PROJECT_NAME}}}}</p>
    <p><strong>Client:</strong> {{{{CLIENT_NAME}}}}</p>
    <p><strong>Address:</strong> {{{{CLIENT_ADDRESS}}}}</p>
  </div>

  <h2 style="{_SECTION_STYLE}">Maintenance Details</h2>
  <p>Regular maintenance services for the specified property.</p>
  <p><strong>Contract Duration:</strong> {{{{PROJECT_DURATION}}}} months</p>
  <p><strong>Monthly Cost:</strong> ₹{{{{ESTIMATED_BUDGET}}}}</p>

  <div>
    {{{{ESTIMATION_TABLE}}}}
  </div>
  <p>Contractor: $company_name</p>
</div>
""")

_CUSTOM = Template(f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto;">
  <h1 style="{_HEADER_STYLE}">{{{{PROJECT_NAME}}}} AGREEMENT</h1>

  <div style="margin: 30px 0;">
    <p><strong>Client:</strong> {{{{CLIENT_NAME}}}}</p>
    <p><strong>Address:</strong> {{{{CLIENT_ADDRESS}}}}</p>
    <p><strong>Date:</strong> {{{{AGREEMENT_DATE}}}}</p>
  </div>

  <p>Add your custom agreement content here...</p>

  <div>
    {{{{ESTIMATION_TABLE}}}}
  </div>
  <p>Contractor: $company_name</p>
</div>
""")

_DEFAULTS = {
    "Construction": _CONSTRUCTION,
    "Renovation": _RENOVATION,
    "Interior": _INTERIOR,
    "Maintenance": _MAINTENANCE,
    "Custom": _CUSTOM,
}


def default_template(agreement_type: str, company_name: str = DEFAULT_COMPANY_NAME) -> str:
    '''
    返回该类型的默认合同 HTML，未知类型用 Custom
    公司名在这里直接写入正文，不作为 token
    '''
    template = _DEFAULTS.get(agreement_type, _CUSTOM)
    return template.safe_substitute(company_name=str(escape(company_name))).strip()
