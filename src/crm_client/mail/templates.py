"""Built-in email templates and placeholder substitution."""

from __future__ import annotations

import re
from collections.abc import Sequence

from crm_client.core.models import Customer, EmailTemplate

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

DEFAULT_TEMPLATES: tuple[EmailTemplate, ...] = (
    EmailTemplate(
        id=1,
        name="Welcome Email",
        subject="Welcome to {{company_name}}!",
        body=(
            "Hi {{customer_name}},\n\n"
            "Thank you for your interest in our services. "
            "We're excited to work with you!\n\n"
            "Here's what you can expect:\n"
            "- Personalized service from our team\n"
            "- Regular updates on your projects\n"
            "- 24/7 support when you need it\n\n"
            "If you have any questions, feel free to reach out.\n\n"
            "Best regards,\n"
            "{{sender_name}}\n"
            "{{company_name}}"
        ),
    ),
    EmailTemplate(
        id=2,
        name="Follow-up Email",
        subject="Following up on our conversation",
        body=(
            "Hi {{customer_name}},\n\n"
            "I wanted to follow up on our recent conversation about {{topic}}.\n\n"
            "Do you have any questions or would you like to schedule a call "
            "to discuss further?\n\n"
            "Looking forward to hearing from you.\n\n"
            "Best regards,\n"
            "{{sender_name}}"
        ),
    ),
    EmailTemplate(
        id=3,
        name="Proposal Email",
        subject="Proposal for {{project_name}}",
        body=(
            "Hi {{customer_name}},\n\n"
            "As discussed, please find attached our proposal for "
            "{{project_name}}.\n\n"
            "The proposal includes:\n"
            "- Detailed project scope\n"
            "- Timeline and milestones\n"
            "- Investment breakdown\n\n"
            "Please review and let us know if you have any questions.\n\n"
            "Best regards,\n"
            "{{sender_name}}"
        ),
    ),
)


def find_template(
    template_id: int, templates: Sequence[EmailTemplate] = DEFAULT_TEMPLATES
) -> EmailTemplate | None:
    for template in templates:
        if template.id == template_id:
            return template
    return None


def render(text: str, values: dict[str, str]) -> str:
    """Replace ``{{name}}`` placeholders present in ``values``.

    Placeholders without a value (``{{topic}}`` for instance) are left in
    place for the user to fill in.
    """
    return _PLACEHOLDER.sub(
        lambda match: values.get(match.group(1), match.group(0)), text
    )


def apply_template(
    template: EmailTemplate,
    customer: Customer | None,
    sender_name: str = "Your Name",
) -> tuple[str, str]:
    """Return ``(subject, body)`` personalised for ``customer``.

    Without a customer the template text is returned unchanged.
    """
    if customer is None:
        return template.subject, template.body
    values = {
        "customer_name": customer.name,
        "company_name": customer.company or "",
        "sender_name": sender_name,
    }
    return render(template.subject, values), render(template.body, values)


__all__ = ["DEFAULT_TEMPLATES", "apply_template", "find_template", "render"]
