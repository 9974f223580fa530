"""
Interview template catalog.

Templates are a closed set; each maps to an icon from a fixed icon set so
an unknown id can never fall through to a default icon silently.
"""

import logging
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from interview_media.core.exceptions import TemplateNotFoundError

logger = logging.getLogger(__name__)


class TemplateId(StrEnum):
    software_engineer = "software-engineer"
    product_manager = "product-manager"
    data_scientist = "data-scientist"
    ux_designer = "ux-designer"
    marketing_manager = "marketing-manager"
    sales_representative = "sales-representative"
    project_manager = "project-manager"
    customer_support = "customer-support"


class IconName(StrEnum):
    code = "Code"
    briefcase = "Briefcase"
    bar_chart = "BarChart"
    palette = "Palette"
    trending_up = "TrendingUp"
    dollar_sign = "DollarSign"
    clipboard_list = "ClipboardList"
    headset_help = "HeadsetHelp"


class Difficulty(StrEnum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class QuestionType(StrEnum):
    behavioral = "behavioral"
    technical = "technical"
    situational = "situational"
    general = "general"


TEMPLATE_ICONS: dict[TemplateId, IconName] = {
    TemplateId.software_engineer: IconName.code,
    TemplateId.product_manager: IconName.briefcase,
    TemplateId.data_scientist: IconName.bar_chart,
    TemplateId.ux_designer: IconName.palette,
    TemplateId.marketing_manager: IconName.trending_up,
    TemplateId.sales_representative: IconName.dollar_sign,
    TemplateId.project_manager: IconName.clipboard_list,
    TemplateId.customer_support: IconName.headset_help,
}


class InterviewTemplate(BaseModel):
    """A predefined mock interview setup."""

    model_config = ConfigDict(frozen=True)

    id: TemplateId
    title: str
    job_role: str
    industry: str
    difficulty: Difficulty
    description: str
    question_types: tuple[QuestionType, ...]

    @property
    def icon(self) -> IconName:
        return TEMPLATE_ICONS[self.id]


_B, _T, _S, _G = (
    QuestionType.behavioral,
    QuestionType.technical,
    QuestionType.situational,
    QuestionType.general,
)

_TEMPLATES: tuple[InterviewTemplate, ...] = (
    InterviewTemplate(
        id=TemplateId.software_engineer,
        title="Software Engineer Interview",
        job_role="Software Engineer",
        industry="Technology",
        difficulty=Difficulty.intermediate,
        description=(
            "Practice common software engineering interview questions covering coding, "
            "system design, and problem-solving."
        ),
        question_types=(_T, _B, _S),
    ),
    InterviewTemplate(
        id=TemplateId.product_manager,
        title="Product Manager Interview",
        job_role="Product Manager",
        industry="Technology",
        difficulty=Difficulty.intermediate,
        description=(
            "Prepare for product management interviews with questions on product strategy, "
            "execution, and leadership."
        ),
        question_types=(_B, _S, _G),
    ),
    InterviewTemplate(
        id=TemplateId.data_scientist,
        title="Data Scientist Interview",
        job_role="Data Scientist",
        industry="Technology",
        difficulty=Difficulty.intermediate,
        description=(
            "Practice data science interview questions covering statistics, machine learning, "
            "and data analysis."
        ),
        question_types=(_T, _B, _S),
    ),
    InterviewTemplate(
        id=TemplateId.ux_designer,
        title="UX Designer Interview",
        job_role="UX Designer",
        industry="Design",
        difficulty=Difficulty.intermediate,
        description=(
            "Prepare for UX design interviews with questions on design process, user research, "
            "and portfolio review."
        ),
        question_types=(_B, _T, _S),
    ),
    InterviewTemplate(
        id=TemplateId.marketing_manager,
        title="Marketing Manager Interview",
        job_role="Marketing Manager",
        industry="Marketing",
        difficulty=Difficulty.intermediate,
        description=(
            "Practice marketing interview questions covering strategy, campaigns, and analytics."
        ),
        question_types=(_B, _S, _G),
    ),
    InterviewTemplate(
        id=TemplateId.sales_representative,
        title="Sales Representative Interview",
        job_role="Sales Representative",
        industry="Sales",
        difficulty=Difficulty.intermediate,
        description=(
            "Prepare for sales interviews with questions on sales techniques, customer "
            "relationships, and objection handling."
        ),
        question_types=(_B, _S, _G),
    ),
    InterviewTemplate(
        id=TemplateId.project_manager,
        title="Project Manager Interview",
        job_role="Project Manager",
        industry="Business",
        difficulty=Difficulty.intermediate,
        description=(
            "Practice project management interview questions covering methodologies, team "
            "leadership, and problem-solving."
        ),
        question_types=(_B, _S, _G),
    ),
    InterviewTemplate(
        id=TemplateId.customer_support,
        title="Customer Support Interview",
        job_role="Customer Support Specialist",
        industry="Customer Service",
        difficulty=Difficulty.beginner,
        description=(
            "Prepare for customer support interviews with questions on communication, "
            "problem-solving, and customer satisfaction."
        ),
        question_types=(_B, _S, _G),
    ),
)

_BY_ID = {template.id: template for template in _TEMPLATES}


def list_templates() -> list[InterviewTemplate]:
    """All templates in display order."""
    return list(_TEMPLATES)


def get_template(template_id: str) -> InterviewTemplate:
    """Look up a template by id.

    Raises:
        TemplateNotFoundError: ``template_id`` is not a known template.
    """
    try:
        key = TemplateId(template_id)
    except ValueError:
        logger.warning("Unknown interview template requested: %s", template_id)
        raise TemplateNotFoundError(template_id) from None
    return _BY_ID[key]


def icon_for(template_id: str) -> IconName:
    """Icon name for a template id; unknown ids raise ``TemplateNotFoundError``."""
    return get_template(template_id).icon
