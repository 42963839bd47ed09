"""
hh-apply server - Main Application Entry Point

FastAPI application exposing the hh.ru OAuth token exchange, vacancy search,
apply and application-history routes used by the ``hh-apply`` CLI.
"""

import argparse
import sys
import time
import uuid
from contextlib import asynccontextmanager
from logging.config import dictConfig
from pathlib import Path
from typing import Callable, Optional

import fastapi
import uvicorn
from dotenv import load_dotenv
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from hh_apply.auth import AuthConfig, AuthenticationMiddleware, AuthManager
from hh_apply.config import OAuthCredentials, Settings
from hh_apply.errors import ConfigurationError, HHApplyError
from hh_apply.routers import (
    create_auth_router,
    create_health_router,
    create_user_router,
    create_vacancies_router,
)
from hh_apply.services import AppServices, build_services
from hh_apply.utils import (
    ColoredConsoleFormatter, JSONFormatter, LogEvent, LogRecord, UvicornAccessFormatter,
    critical, debug, error, info, init_logger, now_ms, warning,
)

# Rich console for startup display
_console = Console()


def setup_logging(settings: Settings) -> dict:
    """Setup logging configuration."""
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colored_console": {"()": ColoredConsoleFormatter, "use_colors": settings.log_color},
            "json": {"()": JSONFormatter},
            "uvicorn_access": {"()": UvicornAccessFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": "colored_console",
                "stream": "ext://sys.stdout",
            },
            "uvicorn_access": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "uvicorn_access",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            settings.app_name: {
                "level": settings.log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["uvicorn_access"],
                "propagate": False,
            },
        },
    }

    # Add file handler if configured
    if settings.log_file_path:
        Path(settings.log_file_path).parent.mkdir(parents=True, exist_ok=True)
        log_config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "level": settings.log_level,
            "formatter": "json",
            "filename": settings.log_file_path,
            "mode": "a",
            "encoding": "utf-8",
        }
        log_config["loggers"][settings.app_name]["handlers"].append("file")

    dictConfig(log_config)
    return log_config


# ===== FASTAPI APPLICATION =====

@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """FastAPI lifespan event handler."""
    services: AppServices = app.state.services
    await services.db.create_all()
    info(LogRecord(
        event=LogEvent.FASTAPI_STARTUP_COMPLETE.value,
        message="FastAPI application startup complete",
    ))

    yield

    await services.db.dispose()
    info(LogRecord(
        event=LogEvent.FASTAPI_SHUTDOWN.value,
        message="FastAPI application shutting down",
    ))


def create_app(
    settings: Optional[Settings] = None,
    credentials: Optional[OAuthCredentials] = None,
    config_path: str = "config.yaml",
    clock: Callable[[], int] = now_ms,
) -> fastapi.FastAPI:
    """
    Build the application.

    Settings default to ``config_path``; credentials default to the
    environment and raise ``ConfigurationError`` when incomplete.
    """
    load_dotenv()
    settings = settings or Settings(config_path)
    credentials = credentials or OAuthCredentials.from_env()

    init_logger(settings.app_name)
    services = build_services(settings, credentials, clock=clock)

    auth_manager = AuthManager(AuthConfig(
        enabled=settings.auth_enabled,
        api_key=settings.auth_api_key,
        exempt_paths=settings.auth_exempt_paths,
    ))

    app = fastapi.FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="hh.ru job-application assistant",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services
    app.state.auth_manager = auth_manager

    if auth_manager.is_enabled():
        app.add_middleware(AuthenticationMiddleware, auth_manager=auth_manager)
        info(LogRecord(
            event=LogEvent.AUTH_MIDDLEWARE_ENABLED.value,
            message=f"Authentication middleware enabled with API key configured: {auth_manager.has_api_key()}",
        ))

    app.include_router(create_auth_router(services))
    app.include_router(create_vacancies_router(services))
    app.include_router(create_user_router(services))
    app.include_router(create_health_router(services, settings.app_name, settings.app_version))

    # Exception handlers
    @app.exception_handler(HHApplyError)
    async def domain_error_handler(request: Request, exc: HHApplyError):
        warning(LogRecord(
            event=LogEvent.REQUEST_FAILURE.value,
            message=f"{request.method} {request.url.path} failed: {exc}",
            data={"status_code": exc.status_code, "error_type": type(exc).__name__},
        ))
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "description": "; ".join(
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
                ),
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        request_id = str(uuid.uuid4())
        error(LogRecord(
            event=LogEvent.REQUEST_FAILURE.value,
            message=f"Unhandled error on {request.method} {request.url.path}",
            request_id=request_id,
        ), exc=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "description": f"Unexpected error, reference {request_id}"},
        )

    # Request logging middleware
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        debug(LogRecord(
            event=LogEvent.HTTP_REQUEST.value,
            message=f"{request.method} {request.url.path}",
            data={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time": round(process_time, 3),
            },
        ))
        return response

    return app


# ===== STARTUP BANNER =====

def display_startup_banner(settings: Settings):
    """Display startup banner with configuration info."""
    banner = """
══════════════════════════════════════════════════════════
 ██   ██ ██   ██      █████  ██████  ██████  ██   ██    ██
 ██   ██ ██   ██     ██   ██ ██   ██ ██   ██ ██    ██  ██
 ███████ ███████     ███████ ██████  ██████  ██     ████
 ██   ██ ██   ██     ██   ██ ██      ██      ██      ██
 ██   ██ ██   ██     ██   ██ ██      ██      ███████ ██
══════════════════════════════════════════════════════════
"""
    _console.print(banner, style="bold red")

    log_file_display = Path(settings.log_file_path).name if settings.log_file_path else "Disabled"
    config_text = Text.assemble(
        ("   Version       : ", "default"),
        (f"v{settings.app_version}", "bold cyan"),
        ("\n   Database      : ", "default"),
        (settings.database_url.split("://")[0], "bold green"),
        ("\n   hh.ru API     : ", "default"),
        (settings.hh_api_base_url, "default"),
        ("\n   API Key Auth  : ", "default"),
        ("enabled" if settings.auth_enabled else "disabled", "green" if settings.auth_enabled else "dim"),
        ("\n   Log Level     : ", "default"),
        (settings.log_level.upper(), "yellow"),
        ("\n   Log File      : ", "default"),
        (log_file_display, "dim"),
        ("\n   Listening on  : ", "default"),
        (f"http://{settings.host}:{settings.port}", "default"),
    )

    _console.print(Panel(
        config_text,
        title="hh-apply Server Configuration",
        border_style="blue",
        expand=False,
    ))
    _console.print(Rule("Starting uvicorn server ...", style="dim blue"))


# ===== COMMAND LINE INTERFACE =====

def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="hh-apply server")
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to run the server on (overrides config file)",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Host to bind the server to (overrides config file)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    try:
        settings = Settings(args.config)
        if args.port:
            settings.port = args.port
        if args.host:
            settings.host = args.host

        log_config = setup_logging(settings)
        app = create_app(settings=settings)
    except ConfigurationError as e:
        critical(LogRecord(
            event=LogEvent.CONFIG_LOAD_FAILED.value,
            message=f"Cannot start: {e}",
        ), exc=e)
        sys.exit(1)

    display_startup_banner(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
