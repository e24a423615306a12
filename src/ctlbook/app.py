"""Application bootstrap helpers for the ctlbook terminal control panel."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .control.agent import FileAgent
from .control.state import SystemInfo
from .documents.registry import INDEX_ID, DocumentRegistry
from .errors import CorpusError
from .services.settings import ENV_OVERRIDE_NAMES, Settings, SettingsStore
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False, *, console: bool = True, force: bool = False) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, console=console, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def load_registry(settings: Settings, *, start_id: str = INDEX_ID) -> DocumentRegistry:
    """Load and validate the corpus; raises :class:`CorpusError` on any problem."""

    if settings.doc_dir:
        return DocumentRegistry.from_directory(settings.doc_dir, start_id=start_id)
    return DocumentRegistry.from_package(start_id=start_id)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `ctlbook` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("CTLBOOK_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("CTLBOOK_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)
        debug = True

    start_id = args.start or INDEX_ID
    try:
        registry = load_registry(settings, start_id=start_id)
    except CorpusError as exc:
        _LOGGER.error("Corpus failed validation:\n%s", exc)
        print(f"ctlbook: corpus failed validation:\n{exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    if args.check:
        _print_corpus_summary(registry)
        return

    _run_tui(settings, registry, start_id=start_id, debug=debug)


def _run_tui(settings: Settings, registry: DocumentRegistry, *, start_id: str, debug: bool) -> None:
    from .engine.context import EngineContext
    from .ui.tui import CtlbookApp

    # The TUI owns the terminal from here on.
    configure_logging(debug, console=False, force=True)
    agent = FileAgent(settings.agent_dir)
    system = SystemInfo.detect(
        total_memory=settings.total_memory,
        prod_environment=settings.prod_environment,
    )
    _LOGGER.info(
        "Starting ctlbook: agent_dir=%s, %d documents, total_memory=%d",
        agent.directory,
        len(registry),
        system.total_memory,
    )

    def _engine_factory(surface: CtlbookApp) -> EngineContext:
        return EngineContext.build(
            registry,
            agent,
            agent,
            surface,
            system=system,
            width=settings.doc_width,
            sync_timeout=settings.sync_timeout,
            poll_interval=settings.sync_poll_interval,
        )

    app = CtlbookApp(_engine_factory, start_id=start_id)
    try:
        app.run()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ctlbook",
        add_help=True,
        description="Browse the interactive control documents or inspect the configuration.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.ctlbook/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Load and validate the document corpus, print a summary and exit.",
    )
    parser.add_argument(
        "--start",
        metavar="DOC-ID",
        help=f"Document to show first (default: {INDEX_ID}).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    optional = type(None) in get_args(annotation)
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if optional and normalized.lower() in {"none", "null", ""}:
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
        "logging": logging_utils.logging_summary(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _print_corpus_summary(registry: DocumentRegistry, stream: TextIO | None = None) -> None:
    destination = stream or sys.stdout
    summary = registry.summary
    destination.write(f"{len(registry)} documents OK (start: {registry.start_id})\n")
    destination.write(f"  jump targets: {len(summary.jump_targets)}\n")
    destination.write(f"  graph tags:   {', '.join(sorted(summary.graph_tags)) or '-'}\n")
    destination.write(f"  sideloads:    {', '.join(sorted(summary.sideload_tags)) or '-'}\n")
    destination.write(f"  sysloads:     {', '.join(sorted(summary.sysload_tags)) or '-'}\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in ENV_OVERRIDE_NAMES if name in os.environ)
