"""
Converters for rendering validation reports, plans and apply results as text.
"""
from typing import List
from jinja2 import Template
from ..MODELS.validation_report import ValidationReport
from ..MANAGERS.apply_manager import ApplyResult

VALIDATION_TEMPLATE = """
{% if source %}{{ source }}: {% endif %}{{ errors|length }} error(s), {{ warnings|length }} warning(s)
{% for issue in issues %}
  {{ issue }}
{% endfor %}
"""

PLAN_TEMPLATE = """
Apply order:
{% for key in order %}
  {{ loop.index }}. {{ key }}
{% endfor %}
"""

CHANGES_TEMPLATE = """
{% for change in changes %}
{{ change.key }} {{ change.action.value }}{% if change.changed_fields %} ({{ change.changed_fields|join(', ') }}){% endif %}{% if dry_run %} (dry run){% endif %}

{% endfor %}
"""


class ReportRenderer:
    """
    Renders results through Jinja2 templates.
    """
    def __init__(self):
        options = dict(trim_blocks=True, lstrip_blocks=True)
        self.validation_template = Template(VALIDATION_TEMPLATE.lstrip(), **options)
        self.plan_template = Template(PLAN_TEMPLATE.lstrip(), **options)
        self.changes_template = Template(CHANGES_TEMPLATE.lstrip(), **options)

    def render_validation(self, report: ValidationReport) -> str:
        return self.validation_template.render(
            source=report.source,
            issues=report.issues,
            errors=report.errors,
            warnings=report.warnings,
        ).rstrip("\n")

    def render_plan(self, order: List[str]) -> str:
        return self.plan_template.render(order=order).rstrip("\n")

    def render_changes(self, result: ApplyResult) -> str:
        return self.changes_template.render(changes=result.changes, dry_run=result.dry_run).rstrip("\n")
