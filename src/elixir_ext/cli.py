from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeAlias

import typer
from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    DocumentSymbol,
    Position,
    Range,
    SymbolKind,
)

from elixir_ext.config import resolve_provision_config
from elixir_ext.exceptions import ElixirExtError
from elixir_ext.extension import ElixirExtension, default_registry
from elixir_ext.labels import CodeLabel
from elixir_ext.runtime.env_policy import LOG_LEVEL_ENV_KEY, env_text
from elixir_ext.runtime.json_io import dump_json_pretty
from elixir_ext.schema import CodeLabelDTO, CodeLabelSpanDTO, LanguageServerCommandDTO
from elixir_ext.status import InstallationStatus
from elixir_ext.worktree import LocalWorktree, Worktree

app = typer.Typer(add_completion=False)

ExtensionFactory: TypeAlias = Callable[..., ElixirExtension]
WorktreeFactory: TypeAlias = Callable[[Path], Worktree]

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        level_name = env_text(LOG_LEVEL_ENV_KEY).upper()
        level = logging.getLevelName(level_name) if level_name else logging.WARNING
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=_LOG_FORMAT)


class _EchoStatusSink:
    def report(self, server_id: str, status: InstallationStatus) -> None:
        typer.secho(
            f"{server_id}: {status.value.replace('_', ' ')}",
            err=True,
            fg=typer.colors.CYAN,
        )


def _default_extension(
    *,
    root: Path,
    work_dir: Path | None = None,
    pre_release: bool | None = None,
) -> ElixirExtension:
    config = resolve_provision_config(
        root,
        overrides={
            "work_dir": str(work_dir) if work_dir is not None else None,
            "pre_release": pre_release,
        },
    )
    return ElixirExtension(default_registry(config, status_sink=_EchoStatusSink()))


def _context_extension_factory(ctx: typer.Context) -> ExtensionFactory:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("extension_factory")
        if callable(candidate):
            return candidate
    return _default_extension


def _context_worktree_factory(ctx: typer.Context) -> WorktreeFactory:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("worktree_factory")
        if callable(candidate):
            return candidate
    return LocalWorktree


def _fail(exc: ElixirExtError) -> typer.Exit:
    typer.secho(str(exc), err=True, fg=typer.colors.RED)
    return typer.Exit(code=1)


def _build_extension(ctx: typer.Context, **kwargs: object) -> ElixirExtension:
    try:
        return _context_extension_factory(ctx)(**kwargs)
    except ElixirExtError as exc:
        raise _fail(exc) from exc


def _parse_kind(text: str, enum_type: type[CompletionItemKind] | type[SymbolKind]):
    raw = text.strip()
    if raw.isdigit():
        try:
            return enum_type(int(raw))
        except ValueError:
            raise typer.BadParameter(f"unknown kind: {text}") from None
    wanted = raw.replace("_", "").replace("-", "").lower()
    for member in enum_type:
        if member.name.lower() == wanted:
            return member
    raise typer.BadParameter(f"unknown kind: {text}")


def _label_payload(label: CodeLabel | None) -> dict[str, object] | None:
    if label is None:
        return None
    return CodeLabelDTO(
        code=label.code,
        spans=[CodeLabelSpanDTO(start=span.start, end=span.end) for span in label.spans],
        filter_range=label.filter_range,
    ).model_dump()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Provision the Elixir language server and render its labels."""
    _configure_logging(verbose)


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    root: Path = typer.Option(Path("."), "--root", help="Worktree root."),
    work_dir: Optional[Path] = typer.Option(None, "--work-dir"),
    pre_release: Optional[bool] = typer.Option(None, "--pre-release/--no-pre-release"),
) -> None:
    """Print the path of a runnable language-server launcher."""
    extension = _build_extension(
        ctx, root=root, work_dir=work_dir, pre_release=pre_release
    )
    worktree = _context_worktree_factory(ctx)(root)
    try:
        path = extension.language_server_binary_path(worktree)
    except ElixirExtError as exc:
        raise _fail(exc) from exc
    typer.echo(path)


@app.command("command")
def command(
    ctx: typer.Context,
    root: Path = typer.Option(Path("."), "--root", help="Worktree root."),
    work_dir: Optional[Path] = typer.Option(None, "--work-dir"),
    pre_release: Optional[bool] = typer.Option(None, "--pre-release/--no-pre-release"),
) -> None:
    """Print the language-server launch command as JSON."""
    extension = _build_extension(
        ctx, root=root, work_dir=work_dir, pre_release=pre_release
    )
    worktree = _context_worktree_factory(ctx)(root)
    try:
        launch = extension.language_server_command(worktree)
    except ElixirExtError as exc:
        raise _fail(exc) from exc
    payload = LanguageServerCommandDTO(
        command=launch.command, args=launch.args, env=launch.env
    ).model_dump()
    typer.echo(dump_json_pretty(payload))


@app.command("workspace-config")
def workspace_config(
    ctx: typer.Context,
    root: Path = typer.Option(Path("."), "--root", help="Worktree root."),
) -> None:
    """Print the workspace configuration sent to the language server."""
    extension = _build_extension(ctx, root=root)
    worktree = _context_worktree_factory(ctx)(root)
    typer.echo(dump_json_pretty(extension.language_server_workspace_configuration(worktree)))


@app.command("label")
def label(
    ctx: typer.Context,
    kind: str = typer.Option(..., "--kind", help="Item kind name or number."),
    name: str = typer.Option(..., "--name"),
    symbol: bool = typer.Option(False, "--symbol", help="Treat the item as a symbol."),
) -> None:
    """Print the code label for a completion (or symbol) item as JSON."""
    extension = _build_extension(ctx, root=Path("."))
    if symbol:
        empty = Range(start=Position(line=0, character=0), end=Position(line=0, character=0))
        item = DocumentSymbol(
            name=name,
            kind=_parse_kind(kind, SymbolKind),
            range=empty,
            selection_range=empty,
        )
        result = extension.label_for_symbol(item)
    else:
        completion = CompletionItem(label=name, kind=_parse_kind(kind, CompletionItemKind))
        result = extension.label_for_completion(completion)
    typer.echo(dump_json_pretty(_label_payload(result)))
