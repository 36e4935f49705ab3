from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import CHEAP_PROVIDERS, EngineConfig, provider_env_hints
from .delegation import CostSaver
from .errors import ThoughtError
from .manager import ParallelThoughtManager, new_session_id
from .types import session_as_dict


def render_session(out: Dict[str, Any], console: Optional[Console] = None) -> None:
    """Print a session as a result table followed by one panel per answer."""
    console = console or Console()
    table = Table(title=f"Session {out['session_id']}")
    table.add_column("Task")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("ms", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Status")
    for r in out["results"]:
        tokens = (r.get("usage") or {}).get("total_tokens")
        table.add_row(
            r["task_id"],
            r["provider"],
            r["model"],
            f"{r['duration_ms']:.0f}",
            "-" if tokens is None else str(tokens),
            Text("error", style="red") if r.get("error") else Text("ok", style="green"),
        )
    console.print(table)

    for r in out["results"]:
        # Text() so bracketed answers are not parsed as markup
        console.print(
            Panel(
                Text(r["response"]),
                title=f"{r['provider']} ({r['model']})",
                border_style="red" if r.get("error") else "green",
            )
        )
    for key, title in (("summary", "Summary"), ("consensus", "Consensus")):
        if out.get(key):
            console.print(Panel(Text(out[key]), title=title, border_style="cyan"))


async def _think(mgr: ParallelThoughtManager, args: argparse.Namespace) -> Dict[str, Any]:
    session = await mgr.execute_parallel(
        args.session_id or new_session_id(),
        args.prompt,
        args.provider or None,
        variants=args.variant or None,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
    )
    out = session_as_dict(session)
    if args.summarize:
        out["summary"] = await mgr.summarize(session.session_id)
    if args.consensus:
        out["consensus"] = await mgr.consensus(session.session_id)
    return out


async def _delegate(mgr: ParallelThoughtManager, args: argparse.Namespace) -> Dict[str, Any]:
    out = await CostSaver(mgr).delegate(args.task, provider=args.provider, model=args.model)
    return {
        "task": out.task,
        "delegated_to": out.provider,
        "model": out.result.model,
        "result": out.result.response,
        "token_usage": asdict(out.result.usage) if out.result.usage else None,
        "duration_ms": out.result.duration_ms,
    }


async def _run(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    mgr = ParallelThoughtManager.from_env(EngineConfig())
    try:
        if args.command == "providers":
            providers = mgr.configured_providers()
            return {"available_providers": list(providers), "missing_hint": list(provider_env_hints()) if not providers else []}
        if args.command == "think":
            return await _think(mgr, args)
        if args.command == "delegate":
            return await _delegate(mgr, args)
        return None
    finally:
        await mgr.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parallel-thought")
    subparsers = parser.add_subparsers(dest="command", required=True)

    think = subparsers.add_parser("think", help="Ask several providers the same question in parallel")
    think.add_argument("--prompt", required=True, help="Prompt sent to every provider")
    think.add_argument("--provider", action="append", default=None, help="Provider to use (repeatable; default: all)")
    think.add_argument("--variant", action="append", default=None, help="Prompt variation (repeatable)")
    think.add_argument("--session-id", default=None, help="Optional session id")
    think.add_argument("--temperature", type=float, default=None)
    think.add_argument("--max-tokens", type=int, default=None)
    think.add_argument("--summarize", action="store_true", help="Also summarize the answers")
    think.add_argument("--consensus", action="store_true", help="Also derive a consensus")
    think.add_argument("--pretty", action="store_true", help="Render tables and panels instead of JSON")

    subparsers.add_parser("providers", help="List configured providers")

    delegate = subparsers.add_parser("delegate", help="Hand a simple task to a low-cost provider")
    delegate.add_argument("--task", required=True, help="Task description")
    delegate.add_argument("--provider", default=None, choices=list(CHEAP_PROVIDERS))
    delegate.add_argument("--model", default=None)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(message)s", stream=sys.stderr)

    try:
        out = asyncio.run(_run(args))
    except ThoughtError as e:
        print(json.dumps({"error": str(e), "type": e.__class__.__name__}, indent=2), file=sys.stderr)
        return 2
    if out is None:
        return 1
    if args.command == "think" and args.pretty:
        render_session(out)
        return 0
    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
