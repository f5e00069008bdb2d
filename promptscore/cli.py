from __future__ import annotations

import argparse
import json
import logging
import os
import random

from rich.console import Console
from rich.table import Table

from .engine import PromptEngine
from .logging_utils import configure_logging, get_log_path, log_exception
from .records import GeneratorContract
from .settings import EngineSettings

_LOGGER = logging.getLogger("promptscore.cli")
_CONSOLE = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="promptscore")
    sub = parser.add_subparsers(dest="command", required=True)

    interpret = sub.add_parser("interpret", help="Resolve a prompt into generator parameters.")
    interpret.add_argument("prompt", type=str)
    interpret.add_argument("--strict", action="store_true", help="Disable energy jitter.")
    interpret.add_argument("--seed", type=int, default=None)
    interpret.add_argument("--json", action="store_true", help="Print the full contract as JSON.")

    sub.add_parser("adjectives", help="List adjectives known to the lexicon.")
    sub.add_parser("doctor", help="Report provider configuration and log paths.")
    return parser


def _print_contract(contract: GeneratorContract) -> None:
    final = contract.auxiliary
    table = Table(title=final.prompt or "(empty prompt)", show_header=False)
    table.add_row("bpm", str(contract.bpm))
    table.add_row("keyword", contract.keyword)
    table.add_row("instrument", contract.instrument)
    table.add_row("bars", str(contract.bars))
    table.add_row("tempo range", f"{final.tempo_range.min}-{final.tempo_range.max}")
    table.add_row("scale", final.scale if final.key is None else f"{final.key} {final.scale}")
    table.add_row("rhythm", final.rhythm_feel)
    table.add_row("progression", " - ".join(final.chord_progression))
    table.add_row("instruments", ", ".join(final.instrument_set))
    table.add_row("energy", f"{final.energy:.2f}")
    table.add_row("mood", final.mood)
    _CONSOLE.print(table)
    for warning in final.warnings:
        _CONSOLE.print(f"[yellow]warning:[/yellow] {warning.message}")


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        settings = EngineSettings.from_env()

        if args.command == "interpret":
            seed = args.seed if args.seed is not None else settings.seed
            engine = PromptEngine(
                settings=settings,
                rng=random.Random(seed),
                strict=args.strict or settings.strict,
            )
            try:
                final = engine.interpret(args.prompt)
                contract = engine.to_generator_params(final)
            finally:
                engine.close()
            if args.json:
                _CONSOLE.print_json(json.dumps(contract.model_dump(mode="json")))
            else:
                _print_contract(contract)
            return 0

        if args.command == "adjectives":
            engine = PromptEngine(settings=settings)
            _CONSOLE.print(", ".join(engine.adjectives()))
            return 0

        if args.command == "doctor":
            report = [
                f"Spotify credentials configured: {settings.has_spotify_credentials}",
                f"Spotify market: {settings.spotify_market}",
                f"Lookup timeout: {settings.lookup_timeout or 'none'}",
                f"Log file: {get_log_path()}",
                "Hints:",
                "- Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET to resolve song/artist/album references.",
                "- Set PROMPTSCORE_LOG_LEVEL=DEBUG to trace resolution steps.",
            ]
            for line in report:
                _CONSOLE.print(line)
            return 0

        parser.print_help()
        return 1
    except Exception as exc:
        debug = bool(os.environ.get("PROMPTSCORE_DEBUG"))
        _LOGGER.warning("promptscore CLI failed: %s", exc, exc_info=debug)
        log_exception("promptscore CLI", exc)
        _CONSOLE.print(f"[red]promptscore failed:[/red] {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
