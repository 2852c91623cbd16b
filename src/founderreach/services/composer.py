"""
Pitch email composer.

Picks a template for the posting's sector (or the built-in default) and
fills in its {{placeholders}}:

  {{ceo_name}} / {{ceoName}}          contact's full name
  {{first_name}}                      contact's first name
  {{company_name}} / {{companyName}}  hiring company
  {{candidates}}                      HTML <ul> of curated candidates

Unknown placeholders are left as-is so a typo is visible in the sent mail
rather than silently blanked.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from founderreach.config import Settings, get_settings
from founderreach.models.candidate import Candidate
from founderreach.models.template import EmailTemplate, Sector
from founderreach.services.storage import JsonStore

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

# Checked in order; the first sector with a matching keyword wins.
_SECTOR_KEYWORDS: list[tuple[Sector, list[re.Pattern]]] = [
    (Sector.FINTECH,     [re.compile(r"fintech"), re.compile(r"financ"), re.compile(r"payment")]),
    (Sector.AI,          [re.compile(r"\bai\b"), re.compile(r"machine learning")]),
    (Sector.HEALTHTECH,  [re.compile(r"health")]),
    (Sector.EDTECH,      [re.compile(r"edtech"), re.compile(r"education")]),
    (Sector.MARKETPLACE, [re.compile(r"marketplace")]),
]


@dataclass
class ComposedEmail:
    subject: str
    body: str
    template_id: Optional[str] = None


def determine_sector(job_title: str) -> Sector:
    """Infer the posting's sector from keywords in its title."""
    title = (job_title or "").lower()
    for sector, patterns in _SECTOR_KEYWORDS:
        if any(p.search(title) for p in patterns):
            return sector
    return Sector.GENERAL


def render(text: str, variables: dict[str, str]) -> str:
    return _PLACEHOLDER.sub(lambda m: variables.get(m.group(1), m.group(0)), text)


def candidates_html(candidates: Sequence[Candidate]) -> str:
    items = "".join(
        '<li><a href="{url}">{name}</a> - {title} at {company}</li>'.format(
            url=html.escape(c.profile_url, quote=True),
            name=html.escape(c.name),
            title=html.escape(c.title or "Engineer"),
            company=html.escape(c.current_company or "a stealth startup"),
        )
        for c in candidates
    )
    return f'<ul style="margin: 20px 0;">{items}</ul>'


class Composer:
    def __init__(self, store: JsonStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def select_template(self, job_title: str, template_id: Optional[str] = None) -> Optional[EmailTemplate]:
        """
        Explicit template id wins; otherwise the active template for the
        title's sector. None means "use the built-in default".
        """
        if template_id:
            return self.store.get_template(template_id)
        return self.store.find_active_template(determine_sector(job_title))

    def compose(
        self,
        contact_name: str,
        company_name: str,
        candidates: Sequence[Candidate],
        template: Optional[EmailTemplate] = None,
    ) -> ComposedEmail:
        first_name = (contact_name or "").split()[0] if (contact_name or "").split() else "there"
        variables = {
            "ceo_name": html.escape(contact_name or "there"),
            "ceoName": html.escape(contact_name or "there"),
            "first_name": html.escape(first_name),
            "company_name": html.escape(company_name),
            "companyName": html.escape(company_name),
            "candidates": candidates_html(candidates),
        }

        subject = template.subject if template and template.subject else self._default_subject()
        body = template.body if template and template.body else self._default_body(len(candidates))

        return ComposedEmail(
            # Subjects are plain text; only the body is HTML
            subject=html.unescape(render(subject, variables)),
            body=render(body, variables),
            template_id=template.id if template else None,
        )

    def _default_subject(self) -> str:
        return "{{company_name}} x " + self.settings.sender_company + ": your next founding engineer is here"

    def _default_body(self, candidate_count: int) -> str:
        s = self.settings
        signature = "<br>\n".join(
            line for line in (
                s.sender_name,
                s.sender_company,
                f'<a href="{html.escape(s.sender_website, quote=True)}">{html.escape(s.sender_website)}</a>'
                if s.sender_website else "",
            ) if line
        )
        return f"""<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <p>Hi {{{{ceo_name}}}},</p>
    <p>I saw that {{{{company_name}}}} just posted a founding engineer role. Congrats on the hiring!</p>
    <p>I specialize in finding exceptional founding engineers, and I've curated a list of {candidate_count} outstanding candidates I think would be a great fit for your team:</p>
    {{{{candidates}}}}
    <p>All of these engineers have proven track records of building and scaling products from scratch.</p>
    <p><strong>Here's how I can help:</strong> I work on a success-fee model. It is free unless you hire through me; if you do, the fee is {s.success_fee_percent}% of the candidate's first-year salary.</p>
    <p>Would love to chat more about your hiring needs.</p>
    <p>Best regards,<br>
    {signature}</p>
  </body>
</html>"""
