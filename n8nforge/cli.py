#!/usr/bin/env python3
# n8nforge/cli.py

import json
from pathlib import Path
from typing import Optional

import typer

from n8nforge.advisory.confidence import confidence_level, score_workflow_validation
from n8nforge.config import load_settings
from n8nforge.discovery.node_discovery import NodeDiscoveryService
from n8nforge.storage.workflow_store import WorkflowStore
from n8nforge.structural.validator import validate_workflow
from n8nforge.utils.io import dump_json, write_json
from n8nforge.utils.logger import ROOT_LOGGER, init_logger, parse_level

app = typer.Typer(help="n8nforge CLI - validate, search and serve n8n workflows over MCP")

_state = {"settings": None}


@app.callback()
def main(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Load environment variables from this .env file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, ...)"),
):
    settings = load_settings(str(env_file) if env_file else None)
    if log_level:
        settings.log_level = log_level.upper()
    _state["settings"] = settings
    init_logger(ROOT_LOGGER, level=parse_level(settings.log_level), log_dir=settings.log_dir)


def _settings():
    return _state["settings"] or load_settings()


@app.command()
def validate(
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True, help="Path to n8n workflow JSON"),
    report: Optional[Path] = typer.Option(None, "--report", help="Write the JSON report to this path"),
    score: bool = typer.Option(False, "--score", help="Also print a confidence score"),
):
    """
    Validate a workflow file. Exit code 1 when errors are found.
    """
    try:
        wf = json.loads(input.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        typer.echo(f"[error] {input} is not valid UTF-8 JSON: {e}", err=True)
        raise typer.Exit(code=2)

    result = validate_workflow(wf)
    typer.echo(f"Valid:    {result.valid}")
    typer.echo(f"Errors:   {len(result.errors)}")
    typer.echo(f"Warnings: {len(result.warnings)}")

    for issue in result.errors:
        where = f" [{issue.node_id}]" if issue.node_id else ""
        typer.echo(f"- [ERROR]{where} {issue.message}")
    for issue in result.warnings:
        where = f" [{issue.node_id}]" if issue.node_id else ""
        typer.echo(f"- [WARN]{where} {issue.message}")
    for s in result.suggestions:
        typer.echo(f"- [HINT] {s}")

    payload = result.to_dict()
    if score and isinstance(wf, dict):
        sc = score_workflow_validation(wf, result.issues)
        typer.echo(f"Confidence: {sc.value} ({confidence_level(sc.value)})")
        payload["confidence"] = sc.to_dict()

    if report is not None:
        write_json(report, payload)
        typer.echo(f"[ok] wrote report to {report}")

    if not result.valid:
        raise typer.Exit(code=1)


@app.command("search-nodes")
def search_nodes(
    term: str = typer.Argument("", help="Search text (whitespace separated tokens)"),
    version: Optional[str] = typer.Option(None, "--version", help="n8n version; best lower match is used"),
    limit: int = typer.Option(20, "--limit", min=1),
    cursor: str = typer.Option("0", "--cursor"),
    all_tokens: bool = typer.Option(False, "--all", help="Require every token to match (AND)"),
    no_tags: bool = typer.Option(False, "--no-tags", help="Do not search codex subcategories"),
    nodes_dir: Optional[Path] = typer.Option(None, "--nodes-dir", help="Override N8N_NODES_DIR"),
):
    """Search node definitions in the local node catalog."""
    settings = _settings()
    svc = NodeDiscoveryService(nodes_dir or settings.nodes_dir, cache_ttl=settings.node_cache_ttl)
    try:
        res = svc.search_nodes(term, n8n_version=version, limit=limit, cursor=cursor,
                               tags=not no_tags, token_logic="and" if all_tokens else "or")
    except ValueError as e:
        raise typer.BadParameter(str(e))
    if res.version is None:
        typer.echo(f"[error] no node catalogs under {svc.nodes_dir}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"n8n {res.version}: {res.total} matching nodes")
    for n in res.nodes:
        typer.echo(f"- {n.get('displayName') or n.get('name')} ({n.get('name')})")
    if res.has_more:
        typer.echo(f"... more results: --cursor {res.next_cursor}")


@app.command()
def versions(
    nodes_dir: Optional[Path] = typer.Option(None, "--nodes-dir", help="Override N8N_NODES_DIR"),
):
    """List n8n versions with a node catalog, newest first."""
    settings = _settings()
    svc = NodeDiscoveryService(nodes_dir or settings.nodes_dir)
    found = svc.available_versions()
    if not found:
        typer.echo("(none)")
    for v in found:
        typer.echo(v)


@app.command("list-local")
def list_local(
    workflows_dir: Optional[Path] = typer.Option(None, "--dir", help="Override N8N_WORKFLOWS_DIR"),
    as_json: bool = typer.Option(False, "--json", help="Print workflow stats as JSON"),
):
    """List workflows stored in the local workspace."""
    store = WorkflowStore(workflows_dir or _settings().workflows_dir)
    names = store.list_names()
    if as_json:
        typer.echo(dump_json({n: store.details(n)["stats"] for n in names}))
        return
    for n in names:
        typer.echo(n)


@app.command()
def serve(
    transport: str = typer.Option("stdio", "--transport", help="stdio | sse | streamable-http"),
):
    """Start the MCP server."""
    from n8nforge.server import serve as run_server

    settings = _settings()
    if transport == "stdio":
        # stdout belongs to the protocol
        init_logger(ROOT_LOGGER, level=parse_level(settings.log_level), log_dir=settings.log_dir, stdio_mode=True)
    run_server(settings, transport=transport)


if __name__ == "__main__":
    app()
