"""Expected end date handshake: the Guide proposes, the Apprentice confirms.

A pending proposal may be revised any number of times.  Once confirmed,
the date is frozen; no operation here touches ``expected_end_date``
again.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from collab.models.project import Project
from collab.services.errors import (
    AlreadyConfirmedError,
    DateNotInFutureError,
    NoPendingProposalError,
    ProjectNotActiveError,
)


def propose(project: Project, proposed: date, today: date) -> Project:
    if not project.is_active:
        raise ProjectNotActiveError("end date can only be proposed while in progress")
    if project.is_temp_end_date_confirmed:
        raise AlreadyConfirmedError("expected end date is already confirmed")
    if proposed <= today:
        raise DateNotInFutureError("end date must be in the future")

    return replace(
        project,
        temp_expected_end_date=proposed,
        is_temp_end_date_confirmed=False,
    )


def confirm(project: Project) -> Project:
    if project.is_temp_end_date_confirmed:
        raise AlreadyConfirmedError("expected end date is already confirmed")
    if project.temp_expected_end_date is None:
        raise NoPendingProposalError("no proposed end date to confirm")

    return replace(
        project,
        expected_end_date=project.temp_expected_end_date,
        temp_expected_end_date=None,
        is_temp_end_date_confirmed=True,
    )
