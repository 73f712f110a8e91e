"""clinirec developer CLI.

Commands:
  login         - Log in and persist the session
  logout        - End the persisted session
  whoami        - Show the persisted session
  navigate      - Show where the navigation guard sends a path
  patients      - List patients
  practitioners - List practitioners
  visits        - List the visits of one patient
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.table import Table

from clinirec.auth.guard import RedirectTo
from clinirec.core.config import get_settings
from clinirec.core.context import ClientContext
from clinirec.core.logging_config import setup_logging

R = TypeVar("R")

app = typer.Typer(
    name="clinirec",
    help="Clinical records client",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()


def build_context() -> ClientContext:
    return ClientContext(get_settings())


def _run(action: Callable[[ClientContext], Awaitable[R]]) -> R:
    async def runner() -> R:
        async with build_context() as context:
            return await action(context)

    return asyncio.run(runner())


def _require_login(context: ClientContext) -> None:
    if not context.session.is_logged_in:
        console.print("Not logged in. Run: clinirec login", style="red")
        raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr"),
) -> None:
    if verbose:
        setup_logging()
        get_settings().log_configuration_summary()


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Account password"
    ),
) -> None:
    """Log in and persist the session."""

    async def action(context: ClientContext) -> bool:
        return await context.session.login(email, password)

    if not _run(action):
        console.print("Login failed", style="red")
        raise typer.Exit(code=1)
    console.print(f"Logged in as {email}", style="green")


@app.command()
def logout() -> None:
    """End the persisted session."""

    async def action(context: ClientContext) -> None:
        context.session.logout()

    _run(action)
    console.print("Logged out", style="green")


@app.command()
def whoami() -> None:
    """Show the persisted session."""

    async def action(context: ClientContext) -> None:
        session = context.session
        if not session.is_logged_in:
            console.print("Not logged in", style="yellow")
            return
        console.print(f"Role: {session.role.value or 'none'}")
        console.print(f"User id: {session.user_id or '-'}")

    _run(action)


@app.command()
def navigate(path: str = typer.Argument(..., help="Path to navigate to")) -> None:
    """Show where the navigation guard sends PATH."""

    async def action(context: ClientContext) -> None:
        decision = context.navigate(path)
        if isinstance(decision, RedirectTo):
            console.print(f"{path} -> redirect to {decision.path}", style="yellow")
        else:
            console.print(f"{path} -> allowed", style="green")

    _run(action)


@app.command()
def patients() -> None:
    """List patients."""

    async def action(context: ClientContext) -> None:
        _require_login(context)
        cache = context.patients
        await cache.load_all()
        if cache.last_error:
            console.print(cache.last_error, style="red")
            raise typer.Exit(code=1)

        table = Table(title="Patients")
        table.add_column("National ID")
        table.add_column("Name")
        table.add_column("Gender")
        table.add_column("Birth date")
        for record in cache.records:
            patient = record.patient
            table.add_row(
                record.national_id,
                patient.display_name,
                patient.gender.value if patient.gender else "-",
                patient.birth_date or "-",
            )
        console.print(table)

    _run(action)


@app.command()
def practitioners() -> None:
    """List practitioners."""

    async def action(context: ClientContext) -> None:
        _require_login(context)
        cache = context.practitioners
        await cache.load_all()
        if cache.last_error:
            console.print(cache.last_error, style="red")
            raise typer.Exit(code=1)

        table = Table(title="Practitioners")
        table.add_column("National ID")
        table.add_column("Name")
        table.add_column("Qualification")
        for practitioner in cache.records:
            qualification = ", ".join(
                q.code.text or (q.code.coding[0].display or q.code.coding[0].code)
                for q in practitioner.qualification
                if q.code.text or q.code.coding
            )
            table.add_row(
                practitioner.record_key or "-",
                practitioner.display_name,
                qualification or "-",
            )
        console.print(table)

    _run(action)


@app.command()
def visits(
    national_id: str = typer.Argument(..., help="Patient national identifier"),
) -> None:
    """List the visits of one patient."""

    async def action(context: ClientContext) -> None:
        _require_login(context)
        cache = context.visits
        await cache.load_for_patient(national_id)
        if cache.last_error:
            console.print(cache.last_error, style="red")
            raise typer.Exit(code=1)

        table = Table(title=f"Visits of {national_id}")
        table.add_column("Visit")
        table.add_column("Date")
        table.add_column("Practitioner")
        table.add_column("Composition")
        for visit in cache.records:
            table.add_row(
                visit.uuid,
                visit.date.isoformat() if visit.date else "-",
                visit.practitioner_name or visit.practitioner_national_id,
                visit.blood_pressure_composition_id or "-",
            )
        console.print(table)

    _run(action)


if __name__ == "__main__":
    app()
