"""Command group: form creation and listing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formpipe.commands._base import FormGroup
from formpipe.domain.dates import DateRules
from formpipe.domain.lifecycle import FormKind

if TYPE_CHECKING:
    from formpipe.commands._context import AppContext


@click.group(
    cls=FormGroup,
    examples="""\
  formpipe form create visit-42 "Household visit"
  formpipe form list""",
)
def form() -> None:
    """Create and list forms."""


@form.command(
    examples="""\
  formpipe form create visit-42 "Household visit"
  formpipe form create visit-42 "Household visit" --report-date 2024-03-01
  formpipe form create enr-7 "Enrollment" --kind enrollment --display-incident-date""",
)
@click.argument("form_id")
@click.argument("title")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in FormKind]),
    default=FormKind.EVENT.value,
    help="Form kind.",
)
@click.option("--report-date", default=None, help="Report date (YYYY-MM-DD or DD/MM/YYYY).")
@click.option("--incident-date", default=None, help="Incident date (YYYY-MM-DD or DD/MM/YYYY).")
@click.option("--display-incident-date", is_flag=True, help="Show the incident date.")
@click.option("--allow-future-report-dates", is_flag=True, help="Allow report dates in the future.")
@click.option(
    "--allow-future-incident-dates", is_flag=True, help="Allow incident dates in the future."
)
@click.pass_obj
def create(
    app: AppContext,
    form_id: str,
    title: str,
    kind: str,
    report_date: str | None,
    incident_date: str | None,
    display_incident_date: bool,
    allow_future_report_dates: bool,
    allow_future_incident_dates: bool,
) -> None:
    """Create a form."""
    rules = DateRules(
        display_incident_date=display_incident_date,
        allow_future_report_dates=allow_future_report_dates,
        allow_future_incident_dates=allow_future_incident_dates,
    )
    app.emit(
        app.form_service().create_form(
            form_id,
            title,
            kind=kind,
            report_date=report_date,
            incident_date=incident_date,
            date_rules=rules,
        )
    )


@form.command("list", examples="  formpipe form list\n  formpipe --json form list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List forms in the store."""
    app.emit(app.form_service().list_forms())
