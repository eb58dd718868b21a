from builddesk.models.agreement import Agreement
from pydantic import BaseModel
from datetime import date


class AgreementDTO(BaseModel):
    id: str
    name: str
    type: str
    last_modified: date
    template_content: str

    @classmethod
    def from_domain_model(cls, agreement: Agreement) -> "AgreementDTO":
        return cls(
            id=agreement.id,
            name=agreement.name,
            type=agreement.type,
            last_modified=agreement.last_modified,
            template_content=agreement.template_content,
        )


class AgreementPreviewDTO(BaseModel):
    html: str
    budget_in_words: str
