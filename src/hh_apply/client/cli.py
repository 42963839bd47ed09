"""
hh-apply command-line client.

Talks to the hh-apply server and keeps the session, the anti-CSRF state and
the job filter in the system keyring.
"""

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass
from logging.config import dictConfig
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from hh_apply.config import CLIENT_ID_ENV, REDIRECT_URI_ENV, Settings
from hh_apply.db.models import ApplicationStatus
from hh_apply.errors import ConfigurationError, HHApplyError, RequireReauth
from hh_apply.models import SearchFilter
from hh_apply.utils import ColoredConsoleFormatter, init_logger

from . import storage as keys
from .auth_flow import AuthFlowController, AuthorizeConfig
from .auto_apply import AutoApplicator
from .backend import BackendClient
from .storage import ClientStorage, KeyringStorage

SERVER_URL_ENV = "HH_APPLY_SERVER_URL"
API_KEY_ENV = "HH_APPLY_API_KEY"
DEFAULT_SERVER_URL = "http://127.0.0.1:8000"

_console = Console()


@dataclass
class CliContext:
    settings: Settings
    storage: ClientStorage
    backend: BackendClient
    controller: AuthFlowController

    def require_user_id(self) -> str:
        user = self.controller.current_user()
        if not user or not user.get("id"):
            raise RequireReauth("Not signed in", description="Run `hh-apply login` first")
        return str(user["id"])

    def load_filter(self) -> SearchFilter:
        return SearchFilter.model_validate(self.storage.get(keys.JOB_FILTER) or {})


def setup_cli_logging(level: str, app_name: str) -> None:
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"colored_console": {"()": ColoredConsoleFormatter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "colored_console",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {app_name: {"level": level, "handlers": ["console"], "propagate": False}},
    })
    init_logger(app_name)


def build_context(args: argparse.Namespace, storage: Optional[ClientStorage] = None) -> CliContext:
    load_dotenv()
    settings = Settings(args.config)

    client_id = os.environ.get(CLIENT_ID_ENV)
    redirect_uri = os.environ.get(REDIRECT_URI_ENV)
    if not client_id or not redirect_uri:
        raise ConfigurationError(f"Set {CLIENT_ID_ENV} and {REDIRECT_URI_ENV} in the environment or .env")

    storage = storage or KeyringStorage(settings.keyring_service)
    backend = BackendClient(
        args.server or os.environ.get(SERVER_URL_ENV) or DEFAULT_SERVER_URL,
        api_key=os.environ.get(API_KEY_ENV),
        timeout=settings.request_timeout * 2,
    )
    controller = AuthFlowController(
        AuthorizeConfig(client_id, redirect_uri, settings.oauth_authorize_url),
        storage,
        backend,
    )
    return CliContext(settings, storage, backend, controller)


# ===== COMMANDS =====

async def cmd_login(ctx: CliContext, args: argparse.Namespace) -> int:
    url = ctx.controller.initiate_login()
    _console.print("Opened the hh.ru consent page in your browser. If it did not open, visit:")
    _console.print(url, style="cyan", soft_wrap=True)
    _console.print('After approving, run: [bold]hh-apply callback "<redirect URL>"[/bold]')
    return 0


async def cmd_callback(ctx: CliContext, args: argparse.Namespace) -> int:
    result = await ctx.controller.handle_callback(args.url)
    user = result.user
    name = " ".join(part for part in (user.get("firstName"), user.get("lastName")) if part)
    _console.print(f"Signed in as [bold green]{name or user.get('email') or user.get('id')}[/bold green]")
    return 0


async def cmd_logout(ctx: CliContext, args: argparse.Namespace) -> int:
    user = ctx.controller.current_user()
    try:
        if user and user.get("id"):
            await ctx.backend.logout(str(user["id"]))
    except HHApplyError as e:
        _console.print(f"Could not revoke the server-side token: {e}", style="yellow")
    finally:
        ctx.controller.logout()
    _console.print("Signed out.")
    return 0


async def cmd_whoami(ctx: CliContext, args: argparse.Namespace) -> int:
    user = ctx.controller.current_user()
    if not user:
        _console.print("Not signed in.", style="yellow")
        return 1
    table = Table(show_header=False)
    for field_name in ("id", "email", "firstName", "lastName"):
        table.add_row(field_name, str(user.get(field_name) or ""))
    _console.print(table)
    return 0


async def cmd_filter(ctx: CliContext, args: argparse.Namespace) -> int:
    if args.filter_command == "reset":
        ctx.storage.delete(keys.JOB_FILTER)
        _console.print("Filter reset to defaults.")
        return 0

    search_filter = ctx.load_filter()
    if args.filter_command == "set":
        updates = {
            name: value
            for name, value in (
                ("job_title", args.job_title),
                ("keywords_include", args.include),
                ("keywords_exclude", args.exclude),
                ("location", args.location),
                ("min_salary", args.min_salary),
                ("max_salary", args.max_salary),
                ("cover_letter", args.cover_letter),
                ("limit", args.limit),
                ("auto_apply", args.auto_apply),
            )
            if value is not None
        }
        search_filter = SearchFilter.model_validate({**search_filter.model_dump(), **updates})
        ctx.storage.set(keys.JOB_FILTER, search_filter.model_dump(by_alias=True))
        _console.print("Filter saved.")

    table = Table(title="Job filter", show_header=False)
    for name, value in search_filter.model_dump(by_alias=True).items():
        table.add_row(name, "" if value is None else str(value))
    _console.print(table)
    return 0


def _vacancy_table(items: List[Dict[str, Any]], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Vacancy")
    table.add_column("Employer")
    table.add_column("Area")
    for vacancy in items:
        table.add_row(
            str(vacancy.get("id")),
            vacancy.get("name") or "",
            (vacancy.get("employer") or {}).get("name") or "",
            (vacancy.get("area") or {}).get("name") or "",
        )
    return table


async def cmd_search(ctx: CliContext, args: argparse.Namespace) -> int:
    user_id = ctx.require_user_id()
    result = await ctx.backend.search(user_id, ctx.load_filter())
    title = f"{result.get('filteredCount', 0)} shown, {result.get('found', 0)} found"
    _console.print(_vacancy_table(result.get("items") or [], title))
    return 0


async def cmd_resumes(ctx: CliContext, args: argparse.Namespace) -> int:
    user_id = ctx.require_user_id()
    result = await ctx.backend.resumes(user_id)
    if result.get("message"):
        _console.print(result["message"], style="yellow")
    table = Table(title="Resumes")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    for resume in result.get("items") or []:
        table.add_row(str(resume.get("id")), resume.get("title") or "")
    _console.print(table)
    return 0


async def _resolve_resume(ctx: CliContext, user_id: str, resume_id: Optional[str]) -> str:
    if resume_id:
        return resume_id
    resumes = (await ctx.backend.resumes(user_id)).get("items") or []
    if not resumes:
        raise HHApplyError("No resumes found", description="Create a resume on hh.ru or pass --resume")
    return str(resumes[0]["id"])


async def cmd_apply(ctx: CliContext, args: argparse.Namespace) -> int:
    user_id = ctx.require_user_id()
    resume_id = await _resolve_resume(ctx, user_id, args.resume)
    cover_letter = args.cover_letter or ctx.load_filter().cover_letter or None
    result = await ctx.backend.apply(user_id, args.vacancy_id, resume_id, cover_letter)
    application = result.get("application") or {}
    if result.get("alreadyApplied"):
        _console.print(f"Already applied to {application.get('vacancyTitle') or args.vacancy_id}.", style="yellow")
    else:
        _console.print(f"Applied to [bold]{application.get('vacancyTitle')}[/bold] at {application.get('companyName')}.")
    return 0


async def cmd_apply_all(ctx: CliContext, args: argparse.Namespace) -> int:
    user_id = ctx.require_user_id()
    resume_id = await _resolve_resume(ctx, user_id, args.resume)

    def progress(current: int, total: int, vacancy: Dict[str, Any], outcome: str) -> None:
        style = {"applied": "green", "skipped": "yellow"}.get(outcome, "red")
        _console.print(f"[{current}/{total}] {vacancy.get('name')}: [{style}]{outcome}[/{style}]")

    applicator = AutoApplicator(
        ctx.backend,
        delay_seconds=ctx.settings.apply_delay_seconds,
        on_progress=progress,
    )
    report = await applicator.run(user_id, ctx.load_filter(), resume_id)
    _console.print(
        f"Done. Applied: {report.applied}, skipped: {report.skipped}, "
        f"failed: {report.failed}, total: {report.total}"
    )
    if report.require_reauth:
        _console.print("Authorization expired. Run `hh-apply login`.", style="bold red")
        return 2
    return 0 if not report.failed else 1


async def cmd_history(ctx: CliContext, args: argparse.Namespace) -> int:
    user_id = ctx.require_user_id()
    if args.remote:
        result = await ctx.backend.negotiations(user_id)
        table = Table(title=f"hh.ru negotiations ({result.get('total', 0)})")
        table.add_column("Vacancy")
        table.add_column("Employer")
        table.add_column("Status")
        table.add_column("Updated")
        for item in result.get("applications") or []:
            table.add_row(item["vacancyName"], item["employerName"], item["status"], str(item.get("updatedAt") or ""))
        _console.print(table)
        return 0

    result = await ctx.backend.applications(user_id)
    table = Table(title="Applications")
    table.add_column("ID", style="dim")
    table.add_column("Vacancy")
    table.add_column("Company")
    table.add_column("Salary")
    table.add_column("Status")
    for application in result.get("applications") or []:
        table.add_row(
            application["id"],
            application["vacancyTitle"],
            application["companyName"],
            application["salaryDisplay"],
            application["status"],
        )
    _console.print(table)
    stats = result.get("stats") or {}
    _console.print(", ".join(f"{name}: {count}" for name, count in stats.items()))
    return 0


async def cmd_mark(ctx: CliContext, args: argparse.Namespace) -> int:
    user_id = ctx.require_user_id()
    record = await ctx.backend.update_application_status(user_id, args.application_id, args.status)
    _console.print(f"{record['vacancyTitle']}: {record['status']}")
    return 0


COMMANDS = {
    "login": cmd_login,
    "callback": cmd_callback,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "filter": cmd_filter,
    "search": cmd_search,
    "resumes": cmd_resumes,
    "apply": cmd_apply,
    "apply-all": cmd_apply_all,
    "history": cmd_history,
    "mark": cmd_mark,
}


# ===== ARGUMENT PARSING =====

def _optional_bool(value: str) -> bool:
    if value.lower() in ("1", "true", "yes", "on"):
        return True
    if value.lower() in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hh-apply", description="Apply to hh.ru vacancies from the command line")
    parser.add_argument("--config", default="config.yaml", help="Path to configuration file (default: config.yaml)")
    parser.add_argument("--server", help=f"hh-apply server URL (default: ${SERVER_URL_ENV} or {DEFAULT_SERVER_URL})")
    parser.add_argument("--log-level", default="WARNING", help="Log level for client diagnostics")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("login", help="Open the hh.ru consent page")
    callback = commands.add_parser("callback", help="Finish login with the redirect URL")
    callback.add_argument("url", help="The full URL hh.ru redirected to")
    commands.add_parser("logout", help="Sign out and revoke the stored token")
    commands.add_parser("whoami", help="Show the signed-in user")

    filter_parser = commands.add_parser("filter", help="Show or edit the job filter")
    filter_commands = filter_parser.add_subparsers(dest="filter_command", required=True)
    filter_commands.add_parser("show")
    filter_commands.add_parser("reset")
    filter_set = filter_commands.add_parser("set")
    filter_set.add_argument("--job-title")
    filter_set.add_argument("--include", help="Comma-separated keywords added to the search text")
    filter_set.add_argument("--exclude", help="Comma-separated keywords that drop a vacancy")
    filter_set.add_argument("--location", help="hh.ru area id")
    filter_set.add_argument("--min-salary", type=int)
    filter_set.add_argument("--max-salary", type=int)
    filter_set.add_argument("--cover-letter")
    filter_set.add_argument("--limit", type=int)
    filter_set.add_argument("--auto-apply", type=_optional_bool)

    commands.add_parser("search", help="Search vacancies with the saved filter")
    commands.add_parser("resumes", help="List your resumes")

    apply = commands.add_parser("apply", help="Apply to one vacancy")
    apply.add_argument("vacancy_id")
    apply.add_argument("--resume", help="Resume id (default: first resume)")
    apply.add_argument("--cover-letter")

    apply_all = commands.add_parser("apply-all", help="Apply to every vacancy the filter finds")
    apply_all.add_argument("--resume", help="Resume id (default: first resume)")

    history = commands.add_parser("history", help="Show application history")
    history.add_argument("--remote", action="store_true", help="Show negotiations as hh.ru reports them")

    mark = commands.add_parser("mark", help="Set the status of a stored application")
    mark.add_argument("application_id")
    mark.add_argument("status", choices=[status.value for status in ApplicationStatus])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_cli_logging(args.log_level.upper(), "hh-apply")

    try:
        ctx = build_context(args)
        return asyncio.run(COMMANDS[args.command](ctx, args))
    except RequireReauth as e:
        _console.print(f"{e}. {e.description or 'Run `hh-apply login`.'}", style="bold red")
        return 2
    except HHApplyError as e:
        message = f"{e}: {e.description}" if e.description else str(e)
        _console.print(message, style="bold red")
        return 1


if __name__ == "__main__":
    sys.exit(main())
