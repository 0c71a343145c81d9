#!/usr/bin/env python3
"""only-agent command-line tool.

Builds the context prompt for a chat agent and applies the tool calls in the
agent's reply to the project.

Usage:
    only-agent prompt "add a --verbose flag" --open src/cli.py --copy
    only-agent apply reply.md                 # approve each action interactively
    only-agent apply reply.md --all           # approve all (SHELL still asks)
    pbpaste | only-agent apply - --dry-run    # list parsed actions only
    only-agent serve --port 8765

Exit codes:
    0  all executed actions succeeded
    1  at least one action failed
    2  the reply contained no usable action
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from only_agent.config.runtime_config import AgentSettings, get_settings
from only_agent.runtime.actions import Action, ActionKind
from only_agent.runtime.controller import ApprovalController
from only_agent.runtime.errors import ParseError
from only_agent.runtime.executor import ExecutionResult
from only_agent.runtime.workspace import LocalWorkspace

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARSE_ERROR = 2


def _build_controller(args: argparse.Namespace, settings: AgentSettings) -> ApprovalController:
    root = args.root if args.root is not None else settings.workspace_root
    if root is None:
        root = Path.cwd()
    workspace = LocalWorkspace(
        root,
        open_paths=getattr(args, "open", None) or (),
        exclude_patterns=settings.exclude_patterns,
    )
    return ApprovalController(workspace, settings=settings)


def describe_action(action: Action) -> str:
    """One-line summary of an action for listings and confirmations."""
    if action.kind == ActionKind.MODIFY:
        lines = action.before.count("\n") + 1
        return f"MODIFY {action.path} (replace {lines} line(s))"
    if action.kind == ActionKind.CREATE:
        return f"CREATE {action.path} ({len(action.content)} chars)"
    return f"{action.kind.value} {action.target}"


def _print_result(result: ExecutionResult) -> None:
    status = "ok" if result.success else f"FAILED [{result.error_code}]"
    print(f"  {status}: {result.message}")


def _read_response(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


# =============================================================================
# Subcommands
# =============================================================================


def cmd_prompt(args: argparse.Namespace, settings: AgentSettings) -> int:
    controller = _build_controller(args, settings)
    instruction = " ".join(args.instruction)
    prompt = controller.build_prompt(instruction)

    if args.copy:
        if controller.workspace.copy_to_clipboard(prompt):
            logger.info("Prompt copied to clipboard (%d chars)", len(prompt))
            return EXIT_OK
        logger.warning("No clipboard available; printing the prompt instead")
    print(prompt)
    return EXIT_OK


def _confirm(action: Action) -> str:
    while True:
        answer = input(f"Apply {describe_action(action)}? [y]es/[n]o/[q]uit: ").strip().lower()
        if answer in ("y", "yes"):
            return "y"
        if answer in ("n", "no", ""):
            return "n"
        if answer in ("q", "quit"):
            return "q"


def cmd_apply(args: argparse.Namespace, settings: AgentSettings) -> int:
    controller = _build_controller(args, settings)
    text = _read_response(args.response)

    try:
        parsed = controller.submit_response(text)
    except ParseError as e:
        logger.error("%s", e.message)
        if args.json:
            print(json.dumps(e.to_dict(), indent=2))
        return EXIT_PARSE_ERROR

    for skipped in parsed.skipped:
        logger.warning(
            "Skipped %s block at line %d (%s%s)",
            skipped.kind,
            skipped.line,
            skipped.reason,
            f": missing {', '.join(skipped.missing)}" if skipped.missing else "",
        )

    if args.dry_run:
        if args.json:
            print(json.dumps(parsed.to_dict(), indent=2))
        else:
            for action in parsed.actions:
                print(f"{action.id}  {describe_action(action)}")
        return EXIT_OK

    results: List[ExecutionResult] = []
    if args.all:
        summary = controller.approve_all()
        results.extend(summary.results)
        if not args.json:
            for result in summary.results:
                _print_result(result)

    # Whatever is left (everything, or the SHELL actions after --all)
    # is confirmed one by one.
    for action in controller.pending:
        if args.yes and action.kind != ActionKind.SHELL:
            choice = "y"
        else:
            choice = _confirm(action)
        if choice == "q":
            break
        if choice == "n":
            controller.discard(action.id)
            continue
        result = controller.approve(action.id)
        results.append(result)
        if not args.json:
            _print_result(result)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))

    failed = sum(1 for r in results if not r.success)
    logger.info("%d action(s) executed, %d failed", len(results), failed)
    return EXIT_FAILED if failed else EXIT_OK


def cmd_serve(args: argparse.Namespace, settings: AgentSettings) -> int:
    import uvicorn

    from only_agent.api.server import create_app

    controller = _build_controller(args, settings)
    app = create_app(controller)
    logger.info("Serving %s at http://%s:%d", controller.workspace.root, args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)
    return EXIT_OK


# =============================================================================
# Entry point
# =============================================================================


def build_parser(settings: AgentSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="only-agent",
        description="Build agent prompts and apply the agent's tool calls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Project root (default: config workspace.root, else the current directory)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    prompt = subparsers.add_parser("prompt", help="Build the context prompt")
    prompt.add_argument("instruction", nargs="*", help="Request to send to the agent")
    prompt.add_argument(
        "--open",
        action="append",
        default=[],
        metavar="PATH",
        help="Include this file's content (repeatable)",
    )
    prompt.add_argument("--copy", "-c", action="store_true", help="Copy to clipboard instead of printing")
    prompt.set_defaults(func=cmd_prompt)

    apply = subparsers.add_parser("apply", help="Parse an agent reply and apply its actions")
    apply.add_argument("response", nargs="?", default="-", help="Reply file, or - for stdin")
    apply.add_argument("--all", "-a", action="store_true", help="Approve all non-SHELL actions at once")
    apply.add_argument("--yes", "-y", action="store_true", help="Approve non-SHELL actions without asking")
    apply.add_argument("--dry-run", "-n", action="store_true", help="Only list the parsed actions")
    apply.add_argument("--json", action="store_true", help="Print results as JSON")
    apply.set_defaults(func=cmd_apply)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.host, help="Host to bind to")
    serve.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    settings = get_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.func(args, settings)
    except (OSError, EOFError) as e:
        logger.error("%s", e)
        return EXIT_FAILED
    except KeyboardInterrupt:
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
