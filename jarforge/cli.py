"""jarforge CLI application with Typer."""

import logging
from pathlib import Path
from typing import Annotated

import typer

from jarforge import __version__
from jarforge.app.build_pipeline import TaskResult
from jarforge.archive.merge import MergePolicy
from jarforge.bootstrap import bootstrap_application
from jarforge.config import get_settings, set_settings
from jarforge.errors import InvalidArgumentError
from jarforge.utils.cli_output import json_response

app = typer.Typer(
    name="jarforge",
    help="Deterministic jar and uberjar assembly for JVM build pipelines",
    add_completion=False,
    no_args_is_help=True,
)
audit_app = typer.Typer(help="Build ledger inspection")
app.add_typer(audit_app, name="audit")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"jarforge version {__version__}")
        raise typer.Exit()


def _emit(result: TaskResult, json_output: bool) -> None:
    """Print a task result and exit non-zero when it failed."""
    if json_output:
        typer.echo(json_response("task_result", 1, **result.model_dump(mode="json")))
    else:
        for notice in result.conflicts:
            typer.secho(
                f"CONFLICT: {notice.path} from {notice.source} ({notice.resolution})",
                fg=typer.colors.YELLOW,
            )
        if result.ok:
            typer.secho(f"✓ {result.task} completed", fg=typer.colors.GREEN)
            for output in result.outputs:
                typer.echo(f"  Output: {output}")
            for key, value in result.details.items():
                typer.echo(f"  {key}: {value}")
        else:
            typer.secho(
                f"Error ({result.error_kind}): {result.error}", fg=typer.colors.RED, err=True
            )

    if not result.ok:
        raise typer.Exit(code=2 if result.error_kind == InvalidArgumentError.kind else 1)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Override data directory"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every staged file and archive entry"),
    ] = False,
) -> None:
    """jarforge - Deterministic jar and uberjar assembly."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )
    settings = get_settings()
    if data_dir:
        settings.data_dir = data_dir
    set_settings(settings)


@app.command("clean")
def clean(
    target_dir: Annotated[Path, typer.Argument(help="Build output directory to delete")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Delete the build output directory."""
    container = bootstrap_application()
    _emit(container.pipeline.clean(target_dir.resolve()), json_output)


@app.command("javac")
def javac(
    src: Annotated[
        list[Path],
        typer.Option("--src", "-s", help="Java source root (repeatable)"),
    ],
    class_dir: Annotated[
        Path,
        typer.Option("--class-dir", "-d", help="Class output directory"),
    ] = Path("target/classes"),
    classpath: Annotated[
        list[Path] | None,
        typer.Option("--cp", help="Classpath entry (repeatable, in order)"),
    ] = None,
    javac_opt: Annotated[
        list[str] | None,
        typer.Option("--javac-opt", help="Extra javac argument (repeatable)"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Compile Java sources into the class directory."""
    container = bootstrap_application()
    result = container.pipeline.javac(
        [path.resolve() for path in src],
        class_dir.resolve(),
        classpath=[path.resolve() for path in classpath or []],
        options=javac_opt or [],
    )
    _emit(result, json_output)


@app.command("resources")
def resources(
    resource_dirs: Annotated[
        list[Path],
        typer.Argument(help="Resource directories to copy, in order"),
    ],
    class_dir: Annotated[
        Path,
        typer.Option("--class-dir", "-d", help="Class output directory"),
    ] = Path("target/classes"),
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Copy resource directories into the class directory."""
    container = bootstrap_application()
    result = container.pipeline.include_resources(
        [path.resolve() for path in resource_dirs], class_dir.resolve()
    )
    _emit(result, json_output)


@app.command("jar")
def jar(
    class_dir: Annotated[Path, typer.Argument(help="Directory to package")],
    lib: Annotated[str, typer.Option("--lib", help="Coordinate as group/artifact")],
    version: Annotated[str, typer.Option("--version", help="Artifact version")],
    target_dir: Annotated[
        Path,
        typer.Option("--target", "-t", help="Directory receiving the archive"),
    ] = Path("target"),
    main_class: Annotated[
        str | None,
        typer.Option("--main-class", "-m", help="Main-Class manifest attribute"),
    ] = None,
    classifier: Annotated[
        str | None,
        typer.Option("--classifier", help="Archive name classifier"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Package a class directory as a jar."""
    container = bootstrap_application()
    result = container.pipeline.jar(
        class_dir.resolve(),
        target_dir.resolve(),
        lib=lib,
        version=version,
        main_class=main_class,
        classifier=classifier,
    )
    _emit(result, json_output)


@app.command("uber")
def uber(
    class_dir: Annotated[Path, typer.Argument(help="Project class output, merged last")],
    lib: Annotated[str, typer.Option("--lib", help="Coordinate as group/artifact")],
    version: Annotated[str, typer.Option("--version", help="Artifact version")],
    lib_path: Annotated[
        list[Path] | None,
        typer.Option("--lib-path", "-l", help="Library archive or directory (repeatable, in order)"),
    ] = None,
    target_dir: Annotated[
        Path,
        typer.Option("--target", "-t", help="Directory receiving the archive"),
    ] = Path("target"),
    main_class: Annotated[
        str | None,
        typer.Option("--main-class", "-m", help="Main-Class manifest attribute"),
    ] = None,
    policy: Annotated[
        MergePolicy | None,
        typer.Option("--policy", help="Conflict policy (defaults to JARFORGE_MERGE_POLICY)"),
    ] = None,
    keep_staging: Annotated[
        bool,
        typer.Option("--keep-staging", help="Retain the staging tree for inspection"),
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Merge libraries and class output into a standalone jar."""
    container = bootstrap_application()
    result = container.pipeline.uber(
        [path.resolve() for path in lib_path or []],
        class_dir.resolve(),
        target_dir.resolve(),
        lib=lib,
        version=version,
        main_class=main_class,
        policy=policy,
        keep_staging=True if keep_staging else None,
    )
    _emit(result, json_output)


@audit_app.command("show")
def audit_show(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    tail: Annotated[
        int | None,
        typer.Option("--tail", "-n", help="Show last N entries"),
    ] = None,
    operation: Annotated[
        str | None,
        typer.Option("--operation", "-o", help="Only show entries for this task"),
    ] = None,
) -> None:
    """Show build ledger entries."""

    container = bootstrap_application()

    if not container.audit_service.is_enabled():
        typer.secho("Build ledger is disabled", fg=typer.colors.YELLOW)
        return

    entries = container.audit_service.get_entries(operation)

    if not entries:
        typer.secho("No build ledger entries found", fg=typer.colors.YELLOW)
        return

    if tail:
        entries = entries[-tail:]

    if json_output:
        typer.echo(
            json_response(
                "build_ledger",
                1,
                total_entries=len(entries),
                entries=[e.model_dump(mode="json") for e in entries],
            )
        )
    else:
        for entry in entries:
            typer.echo(f"{entry.timestamp} | {entry.operation} | {', '.join(entry.outputs)}")


@audit_app.command("verify")
def audit_verify() -> None:
    """Verify build ledger integrity."""
    container = bootstrap_application()

    if not container.audit_service.is_enabled():
        typer.secho("Build ledger is disabled", fg=typer.colors.YELLOW)
        return

    valid, error = container.audit_service.verify()

    if valid:
        typer.secho("Build ledger is valid", fg=typer.colors.GREEN)
        return

    message = error or "Build ledger integrity check failed"
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
