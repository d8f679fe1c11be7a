"""Primary Typer application wiring the ruleverify CLI."""

from __future__ import annotations

from typing import Any, Callable, List, Optional

import typer
from rich.table import Table

from ruleverify.exceptions import RuleVerificationError, StorageError, VerificationFailedError
from ruleverify.storage.db import DbSearchTerm, SqlAlchemyDbProvider
from ruleverify.utils.logging import configure_logging, get_logger
from ruleverify.verification import DbVerification, FileSystemVerification, S3Verification
from ruleverify.verification.skeleton import VerificationSkeleton

from .common import (
    CLIError,
    Mode,
    apply_polling,
    configure_state,
    console,
    get_state,
    parse_assignment,
    parse_column,
    parse_override,
    render_meta_data,
)

_LOGGER = get_logger(component="cli")


class RuleVerifyTyper(typer.Typer):
    """Typer subclass that supports registering exception handlers."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._exception_handlers: list[tuple[type[BaseException], Callable[[BaseException], Any]]] = []

    def exception_handler(
        self, exception_type: type[BaseException]
    ) -> Callable[[Callable[[BaseException], Any]], Callable[[BaseException], Any]]:
        def decorator(handler: Callable[[BaseException], Any]) -> Callable[[BaseException], Any]:
            self._exception_handlers.append((exception_type, handler))
            return handler

        return decorator

    def _resolve_handler(self, exception: BaseException) -> Callable[[BaseException], Any] | None:
        for registered_type, handler in self._exception_handlers:
            if isinstance(exception, registered_type):
                return handler
        return None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().__call__(*args, **kwargs)
        except BaseException as exc:  # pragma: no cover - CLI surface behaviour
            handler = self._resolve_handler(exc)
            if handler is None:
                raise
            result = handler(exc)
            if isinstance(result, BaseException):
                raise result
            return result


app = RuleVerifyTyper(
    add_completion=False,
    help="""
    Poll files, database rows or S3 objects until they satisfy a set of
    checks, then report the matching records.
    """.strip(),
    no_args_is_help=True,
)


@app.exception_handler(VerificationFailedError)
def handle_verification_failed(exception: VerificationFailedError) -> typer.Exit:
    console.print(f"[bold red]Failed:[/bold red] {exception}")
    if exception.rule_description:
        console.print(f"[yellow]Last evaluated rule:[/yellow] {exception.rule_description}")
    return typer.Exit(code=1)


@app.exception_handler(StorageError)
def handle_storage_error(exception: StorageError) -> typer.Exit:
    console.print(f"[bold red]Storage error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.exception_handler(CLIError)
def handle_cli_error(exception: CLIError) -> typer.Exit:
    """Render ``CLIError`` messages without stack traces."""

    console.print(f"[bold red]Error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.exception_handler(RuleVerificationError)
def handle_rule_error(exception: RuleVerificationError) -> typer.Exit:
    console.print(f"[bold red]Rule error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.callback()
def main(
    ctx: typer.Context,
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        "-e",
        help="Active configuration environment (development, testing, production).",
        show_default=False,
    ),
    override: List[str] = typer.Option(  # noqa: B008 - Typer callback signature
        [],
        "--override",
        "-o",
        metavar="KEY=VALUE",
        help="Configuration override in dotted.key=value notation (repeatable).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Emit debug logging and print the resolved CLI context.",
    ),
) -> None:
    """Configure shared CLI state prior to executing subcommands."""

    overrides = [parse_override(item) for item in override]
    configure_state(ctx, environment=environment, overrides=overrides, verbose=verbose)
    state = get_state(ctx)
    configure_logging(state.settings, level="DEBUG" if verbose else None)

    if verbose:
        polling = state.settings.policies.polling
        table = Table(title="CLI Context", show_header=False, box=None)
        table.add_row("Environment", state.environment)
        table.add_row("Policy version", state.settings.policy_version)
        table.add_row(
            "Polling",
            f"{polling.attempts} attempts, {polling.interval_seconds}s interval, "
            f"timeout {polling.timeout_seconds}s",
        )
        console.print(table)


def _attempts_option() -> Any:
    return typer.Option(None, "--attempts", min=1, help="Number of polls.", show_default=False)


def _interval_option() -> Any:
    return typer.Option(None, "--interval", min=0.0, help="Seconds between polls.", show_default=False)


def _initial_delay_option() -> Any:
    return typer.Option(
        None, "--initial-delay", min=0.0, help="Seconds before the first poll.", show_default=False
    )


def _timeout_option() -> Any:
    return typer.Option(None, "--timeout", help="Overall timeout in seconds.", show_default=False)


def _mode_option() -> Any:
    return typer.Option(Mode.EXISTS, "--mode", "-m", case_sensitive=False, help="Temporal verification mode.")


def _run(driver: VerificationSkeleton, mode: Mode, only_new: bool, *, title: str, folder: bool = False) -> None:
    """Dispatch ``mode`` to the driver and print the outcome."""

    if only_new and mode is not Mode.EXISTS:
        raise CLIError("--only-new is only supported together with --mode exists")

    _LOGGER.debug("Running {mode} verification for {title}", mode=mode.value, title=title)
    if isinstance(driver, FileSystemVerification):
        records = _run_filesystem(driver, mode, only_new, folder)
    elif mode is Mode.EXISTS:
        records = driver.verify_exists(only_new)
    elif mode is Mode.ALWAYS_EXISTS:
        records = driver.verify_always_exists()
    elif mode is Mode.NEVER_EXISTS:
        driver.verify_never_exists()
        records = []
    else:
        driver.verify_does_not_exist()
        records = []

    if mode in (Mode.EXISTS, Mode.ALWAYS_EXISTS):
        render_meta_data(title, records)
    console.print(f"[bold green]Verified:[/bold green] {title} ({mode.value})")


def _run_filesystem(driver: FileSystemVerification, mode: Mode, only_new: bool, folder: bool) -> list:
    # Matched meta data is read from the last monitor result so the table keeps every property.
    if mode is Mode.EXISTS:
        (driver.verify_folder_exists if folder else driver.verify_file_exists)(only_new)
    elif mode is Mode.ALWAYS_EXISTS:
        (driver.verify_folder_always_exists if folder else driver.verify_file_always_exists)()
    elif mode is Mode.NEVER_EXISTS:
        (driver.verify_folder_never_exists if folder else driver.verify_file_never_exists)()
    else:
        (driver.verify_folder_does_not_exist if folder else driver.verify_file_does_not_exist)()
    return list(driver.last_result.matched) if driver.last_result else []


@app.command("files")
def files_command(
    ctx: typer.Context,
    directory: str = typer.Argument(..., help="Folder to poll."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="File name, or pattern with --regex."),
    is_regex: bool = typer.Option(False, "--regex", help="Treat --name as a regular expression."),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Descend into sub folders."),
    folder: bool = typer.Option(False, "--folder", help="Verify folders instead of files."),
    mode: Mode = _mode_option(),
    only_new: bool = typer.Option(False, "--only-new", help="Only consider entries created while polling."),
    size: Optional[int] = typer.Option(None, "--size", help="Expected size in bytes.", show_default=False),
    md5: Optional[str] = typer.Option(None, "--md5", help="Expected MD5 hex digest.", show_default=False),
    contains: List[str] = typer.Option(  # noqa: B008 - Typer option signature
        [], "--contains", help="Text the file contents must contain (repeatable)."
    ),
    attempts: Optional[int] = _attempts_option(),
    interval: Optional[float] = _interval_option(),
    initial_delay: Optional[float] = _initial_delay_option(),
    timeout: Optional[float] = _timeout_option(),
) -> None:
    """Verify files or folders on the local file system."""

    state = get_state(ctx)
    driver = FileSystemVerification(directory, name, is_regex, recursive=recursive, settings=state.settings)
    if size is not None:
        driver.check_size(size)
    if md5 is not None:
        driver.check_md5(md5)
    for expression in contains:
        driver.check_contents(expression)
    apply_polling(driver, attempts=attempts, interval=interval, initial_delay=initial_delay, timeout=timeout)
    _run(driver, mode, only_new, title=driver.folder.description, folder=folder)


@app.command("db")
def db_command(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(
        None, "--url", envvar="RULEVERIFY_DB_URL", help="SQLAlchemy database URL.", show_default=False
    ),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="SQL query returning the rows to verify."),
    table: Optional[str] = typer.Option(None, "--table", "-t", help="Verify every row of this table."),
    param: List[str] = typer.Option(  # noqa: B008 - Typer option signature
        [], "--param", "-p", metavar="KEY=VALUE", help="Bound query parameter (repeatable)."
    ),
    equals: List[str] = typer.Option(  # noqa: B008 - Typer option signature
        [], "--equals", metavar="TABLE.COLUMN=VALUE", help="Column must equal the value (repeatable)."
    ),
    contains: List[str] = typer.Option(  # noqa: B008 - Typer option signature
        [], "--contains", metavar="TABLE.COLUMN=VALUE", help="Column must contain the value (repeatable)."
    ),
    regex: List[str] = typer.Option(  # noqa: B008 - Typer option signature
        [], "--regex", metavar="TABLE.COLUMN=PATTERN", help="Column must match the pattern (repeatable)."
    ),
    mode: Mode = _mode_option(),
    only_new: bool = typer.Option(False, "--only-new", help="Only consider rows added while polling."),
    attempts: Optional[int] = _attempts_option(),
    interval: Optional[float] = _interval_option(),
    initial_delay: Optional[float] = _initial_delay_option(),
    timeout: Optional[float] = _timeout_option(),
) -> None:
    """Verify the rows returned by a database query."""

    state = get_state(ctx)
    policy = state.settings.policies.database
    resolved_url = url or policy.url
    if not resolved_url:
        raise CLIError("No database URL given; pass --url or set policies.database.url")
    if (query is None) == (table is None):
        raise CLIError("Provide exactly one of --query or --table")

    params = dict(parse_assignment(item, option="--param") for item in param)
    if query is not None:
        search_term = DbSearchTerm(query, params)
    else:
        search_term = DbSearchTerm(f"SELECT * FROM {table}", params, table=table or "")

    provider = SqlAlchemyDbProvider(resolved_url, echo=policy.echo)
    try:
        driver = DbVerification(search_term, provider, settings=state.settings)
        for option, values, check in (
            ("--equals", equals, driver.check_field_value_equals),
            ("--contains", contains, driver.check_field_value_contains),
            ("--regex", regex, driver.check_field_value_regex),
        ):
            for item in values:
                reference, value = parse_assignment(item, option=option)
                column_table, column = parse_column(reference, option=option)
                check(column_table, column, value)
        apply_polling(
            driver, attempts=attempts, interval=interval, initial_delay=initial_delay, timeout=timeout
        )
        _run(driver, mode, only_new, title=driver.folder.description)
    finally:
        provider.dispose()


@app.command("s3")
def s3_command(
    ctx: typer.Context,
    bucket: str = typer.Argument(..., help="Bucket to poll."),
    prefix: str = typer.Option("", "--prefix", help="Key prefix acting as the folder."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Object name, or pattern with --regex."),
    is_regex: bool = typer.Option(False, "--regex", help="Treat --name as a regular expression."),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include keys below nested prefixes."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="S3-compatible endpoint URL."),
    region: Optional[str] = typer.Option(None, "--region", help="Signing region."),
    access_key: Optional[str] = typer.Option(None, "--access-key", envvar="RULEVERIFY_S3_ACCESS_KEY"),
    secret_key: Optional[str] = typer.Option(
        None, "--secret-key", envvar="RULEVERIFY_S3_SECRET_KEY", show_default=False
    ),
    size: Optional[int] = typer.Option(None, "--size", help="Expected size in bytes.", show_default=False),
    md5: Optional[str] = typer.Option(None, "--md5", help="Expected MD5 (ETag) digest.", show_default=False),
    mode: Mode = _mode_option(),
    only_new: bool = typer.Option(False, "--only-new", help="Only consider objects created while polling."),
    attempts: Optional[int] = _attempts_option(),
    interval: Optional[float] = _interval_option(),
    initial_delay: Optional[float] = _initial_delay_option(),
    timeout: Optional[float] = _timeout_option(),
) -> None:
    """Verify objects in an S3-compatible bucket."""

    state = get_state(ctx)
    driver = S3Verification(
        bucket,
        prefix,
        name,
        is_regex,
        recursive=recursive,
        endpoint=endpoint,
        access_key=access_key,
        secret_key=secret_key,
        region=region,
        settings=state.settings,
    )
    if size is not None:
        driver.check_size(size)
    if md5 is not None:
        driver.check_md5(md5)
    apply_polling(driver, attempts=attempts, interval=interval, initial_delay=initial_delay, timeout=timeout)
    _run(driver, mode, only_new, title=driver.folder.description)


__all__ = ["app", "main", "RuleVerifyTyper"]
